"""
Genotyping data container.

GenotypingDataset holds the observed allele presence/absence calls for every
(locus, sample) pair, the missingness mask, and quantities derived from them.
It is built once, before any chain starts, and is shared read-only by every
chain and by the engine.

Loci may carry different numbers of alleles. Internally the calls are stored
padded to max_alleles along the last axis, with allele_mask marking which
positions are real alleles for each locus:

    observed:     (num_loci, num_samples, max_alleles) bool
    allele_mask:  (num_loci, max_alleles) bool
    missing_mask: (num_loci, num_samples) bool

The arrays are NumPy arrays flagged read-only. The dataset is registered as a
JAX pytree so it can be passed straight into jitted kernels.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import jax
import numpy as np

from .error_handling import GenotypingDataError


@dataclass(frozen=True)
class GenotypingDataset:
    """
    Immutable multi-locus presence/absence genotype tensor.

    Fields:
        observed: Padded presence calls (num_loci, num_samples, max_alleles)
        missing_mask: True where the (locus, sample) call is missing
        allele_mask: True for real allele slots (num_loci, max_alleles)
        num_alleles: Allele count per locus (num_loci,)
        observed_coi: Max over loci of alleles present, per sample (num_samples,)
        num_loci, num_samples, max_alleles: Static sizes
    """
    observed: np.ndarray
    missing_mask: np.ndarray
    allele_mask: np.ndarray
    num_alleles: np.ndarray
    observed_coi: np.ndarray
    num_loci: int
    num_samples: int
    max_alleles: int

    @classmethod
    def from_nested(cls, data: Sequence, is_missing: Optional[Sequence] = None) -> 'GenotypingDataset':
        """
        Build a dataset from nested [locus][sample][allele] 0/1 lists.

        Args:
            data: Nested sequence; every sample at a locus must have the same
                  number of alleles, loci may differ.
            is_missing: Nested [locus][sample] booleans (default: nothing missing)

        Raises:
            GenotypingDataError: If the input is empty, ragged within a locus,
                                 not 0/1, or the mask shape does not match.
        """
        errors = []

        num_loci = len(data)
        if num_loci == 0:
            raise GenotypingDataError("Genotyping data is empty: no loci")

        num_samples = len(data[0])
        if num_samples == 0:
            raise GenotypingDataError("Genotyping data is empty: no samples")

        num_alleles = np.zeros(num_loci, dtype=np.int32)
        for locus, locus_data in enumerate(data):
            if len(locus_data) != num_samples:
                errors.append(
                    f"Locus {locus} has {len(locus_data)} samples, expected {num_samples}"
                )
                continue
            counts = {len(sample_data) for sample_data in locus_data}
            if len(counts) != 1:
                errors.append(
                    f"Locus {locus} has inconsistent allele counts across samples: {sorted(counts)}"
                )
                continue
            num_alleles[locus] = counts.pop()
            if num_alleles[locus] < 1:
                errors.append(f"Locus {locus} has no alleles")

        if errors:
            raise GenotypingDataError("Invalid genotyping data:\n  " + "\n  ".join(errors))

        max_alleles = int(num_alleles.max())
        observed = np.zeros((num_loci, num_samples, max_alleles), dtype=np.float64)
        for locus, locus_data in enumerate(data):
            observed[locus, :, :num_alleles[locus]] = np.asarray(locus_data, dtype=np.float64)

        if np.any((observed != 0) & (observed != 1)):
            raise GenotypingDataError("Genotyping data must contain only 0/1 presence calls")

        if is_missing is None:
            missing = np.zeros((num_loci, num_samples), dtype=bool)
        else:
            missing = np.asarray(is_missing, dtype=bool)
            if missing.shape != (num_loci, num_samples):
                raise GenotypingDataError(
                    f"is_missing has shape {missing.shape}, expected {(num_loci, num_samples)}"
                )

        return cls.from_arrays(observed.astype(bool), missing, num_alleles)

    @classmethod
    def from_arrays(cls, observed: np.ndarray, missing_mask: np.ndarray,
                    num_alleles: np.ndarray) -> 'GenotypingDataset':
        """Build from already padded arrays; derives allele_mask and observed_coi."""
        observed = np.array(observed, dtype=bool)
        missing_mask = np.array(missing_mask, dtype=bool)
        num_alleles = np.array(num_alleles, dtype=np.int32)

        if observed.ndim != 3 or observed.shape[0] == 0 or observed.shape[1] == 0:
            raise GenotypingDataError(f"observed must be a non-empty 3-D tensor, got shape {observed.shape}")

        num_loci, num_samples, max_alleles = observed.shape
        if missing_mask.shape != (num_loci, num_samples):
            raise GenotypingDataError(
                f"missing_mask has shape {missing_mask.shape}, expected {(num_loci, num_samples)}"
            )
        if num_alleles.shape != (num_loci,) or np.any(num_alleles < 1) or np.any(num_alleles > max_alleles):
            raise GenotypingDataError(
                f"num_alleles must hold one count in [1, {max_alleles}] per locus, got {num_alleles.tolist()}"
            )

        allele_mask = np.arange(max_alleles)[None, :] < num_alleles[:, None]
        if np.any(observed & ~allele_mask[:, None, :]):
            raise GenotypingDataError("observed has presence calls in padded allele slots")

        observed_coi = observed.sum(axis=2).max(axis=0).astype(np.int32)

        for arr in (observed, missing_mask, allele_mask, num_alleles, observed_coi):
            arr.flags.writeable = False

        return cls(
            observed=observed,
            missing_mask=missing_mask,
            allele_mask=allele_mask,
            num_alleles=num_alleles,
            observed_coi=observed_coi,
            num_loci=int(num_loci),
            num_samples=int(num_samples),
            max_alleles=int(max_alleles),
        )

    def get_observed_alleles(self, locus: int, sample: int) -> List[int]:
        """Original 0/1 call vector for (locus, sample), unpadded."""
        n = int(self.num_alleles[locus])
        return [int(v) for v in self.observed[locus, sample, :n]]

    def is_missing(self, locus: int, sample: int) -> bool:
        return bool(self.missing_mask[locus, sample])


def _dataset_flatten(ds):
    """Flatten GenotypingDataset for JAX pytree."""
    children = (ds.observed, ds.missing_mask, ds.allele_mask, ds.num_alleles, ds.observed_coi)
    aux_data = (ds.num_loci, ds.num_samples, ds.max_alleles)
    return children, aux_data


def _dataset_unflatten(aux_data, children):
    """Unflatten GenotypingDataset from JAX pytree."""
    observed, missing_mask, allele_mask, num_alleles, observed_coi = children
    num_loci, num_samples, max_alleles = aux_data
    return GenotypingDataset(
        observed=observed,
        missing_mask=missing_mask,
        allele_mask=allele_mask,
        num_alleles=num_alleles,
        observed_coi=observed_coi,
        num_loci=num_loci,
        num_samples=num_samples,
        max_alleles=max_alleles,
    )


# Register GenotypingDataset as a JAX pytree
jax.tree_util.register_pytree_node(
    GenotypingDataset,
    _dataset_flatten,
    _dataset_unflatten
)
