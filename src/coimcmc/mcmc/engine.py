"""
MCMC Engine - chain management for the COI sampler.

MCMCEngine owns one ChainState and one random stream per chain and drives
them through the burn-in and sampling phases:

    engine = MCMCEngine(dataset, {'num_chains': 4, 'burnin': 1000, 'samples': 1000})
    engine.burnin()
    engine.sample()
    results = engine.results()

All chains advance together: every sweep is vmapped across chains and
sweeps are executed in jitted chunks of `chunk_size` records. Recorded
values are transferred to the host after each chunk and appended to the
engine's traces.
"""

import time
from datetime import timedelta
from typing import Any, Dict, Optional

import jax
import jax.numpy as jnp
import numpy as np

from ..error_handling import ConfigurationError, validate_mcmc_config
from ..lookup import NumericLookup
from ..moves import build_moves, move_names
from ..settings import build_settings_vector
from ..state import build_model_context, initialize_chain_state
from .config import clean_config, configure_precision, gen_chain_keys, gen_rng_keys
from .diagnostics import acceptance_rates, print_acceptance_summary
from .sampling import move_unit_counts
from .scan import run_record_chunk, run_unrecorded
from .types import ChainPhase, build_run_params

import logging
logger = logging.getLogger('coimcmc')


# record key -> trace name
_TRACE_NAMES = {
    'coi': 'coi_store',
    'allele_freqs': 'allele_freq_store',
    'eps_pos': 'eps_pos_store',
    'eps_neg': 'eps_neg_store',
    'mean_coi': 'mean_coi_store',
}


class MCMCEngine:
    """
    Runs independent Metropolis-Hastings chains over one dataset.

    Args:
        dataset: GenotypingDataset
        mcmc_config: Run configuration dict (see clean_config for keys)
        lookup: Optional prebuilt NumericLookup; built from max_coi if omitted

    Raises:
        ConfigurationError: Invalid configuration, or a lookup built for a
                            different max_coi
    """

    def __init__(self, dataset, mcmc_config: Dict[str, Any], lookup: Optional[NumericLookup] = None):
        mcmc_config = clean_config(dict(mcmc_config))
        validate_mcmc_config(mcmc_config)
        self.config = mcmc_config
        self.run_params = build_run_params(mcmc_config)
        self.verbose = bool(mcmc_config['verbose'])
        self.float_dtype, _ = configure_precision(mcmc_config['use_double'])

        if lookup is None:
            lookup = NumericLookup.build(self.run_params.MAX_COI)
        elif lookup.max_coi != self.run_params.MAX_COI:
            raise ConfigurationError(
                f"lookup was built for max_coi={lookup.max_coi}, config has max_coi={self.run_params.MAX_COI}"
            )
        self.dataset = dataset
        self.lookup = lookup

        settings = build_settings_vector(mcmc_config, self.float_dtype)
        self.ctx = build_model_context(dataset, lookup, settings, self.float_dtype)
        self.move_names = move_names()

        num_chains = self.run_params.NUM_CHAINS
        self._phases = [ChainPhase.UNINITIALIZED] * num_chains

        master_key, init_key = gen_rng_keys(int(mcmc_config['rng_seed']))
        self._keys = gen_chain_keys(master_key, num_chains)
        init_keys = gen_chain_keys(init_key, num_chains)
        self._states = jax.vmap(initialize_chain_state, in_axes=(0, None))(init_keys, self.ctx)
        self._set_phase(ChainPhase.BURNING_IN)

        first_state = jax.tree_util.tree_map(lambda x: x[0], self._states)
        self._unit_counts = move_unit_counts(build_moves(self.run_params), first_state, self.ctx)

        self._traces = self._empty_traces()
        self._acceptance = {}

        if self.verbose:
            logger.info(f"Initialized {num_chains} chain(s): {dataset.num_loci} loci, "
                        f"{dataset.num_samples} samples, max_coi={self.run_params.MAX_COI}")

    # ------------------------------------------------------------------
    # Phase management
    # ------------------------------------------------------------------

    @property
    def phases(self):
        return list(self._phases)

    def _set_phase(self, new_phase: ChainPhase) -> None:
        for chain, phase in enumerate(self._phases):
            if new_phase != phase + 1:
                raise RuntimeError(
                    f"Chain {chain}: illegal phase transition {phase.name} -> {new_phase.name}"
                )
        self._phases = [new_phase] * len(self._phases)

    def _require_phase(self, expected: ChainPhase, action: str) -> None:
        for chain, phase in enumerate(self._phases):
            if phase != expected:
                raise RuntimeError(f"Cannot {action}: chain {chain} is {phase.name}, expected {expected.name}")

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def burnin(self) -> None:
        """Run the burn-in phase, recording only log-likelihoods."""
        self._require_phase(ChainPhase.BURNING_IN, "run burn-in")
        if self.run_params.BURNIN == 0:
            if self.verbose:
                logger.info("Skipping burn-in (burnin=0)")
        else:
            records = self._run_phase('burnin', self.run_params.BURNIN, record_params=False)
            self._append('loglike_burnin', records['log_likelihood'])
        self._set_phase(ChainPhase.SAMPLING)

    def sample(self) -> None:
        """
        Run the sampling phase, recording log-likelihoods and parameters.

        Calling sample() while still in burn-in skips the burn-in phase.
        """
        if all(phase == ChainPhase.BURNING_IN for phase in self._phases):
            self._set_phase(ChainPhase.SAMPLING)
        self._require_phase(ChainPhase.SAMPLING, "sample")

        if self.run_params.SAMPLES == 0:
            if self.verbose:
                logger.info("Skipping sampling (samples=0)")
        else:
            records = self._run_phase('sample', self.run_params.SAMPLES, record_params=True)
            self._append('loglike_sample', records['log_likelihood'])
            for record_key, trace_name in _TRACE_NAMES.items():
                self._append(trace_name, records[record_key])
        self._set_phase(ChainPhase.COMPLETE)

    def run(self) -> Dict[str, Any]:
        """Run burn-in then sampling and return results()."""
        self.burnin()
        self.sample()
        return self.results()

    def _run_phase(self, phase: str, n_iterations: int, record_params: bool) -> Dict[str, np.ndarray]:
        """
        Execute n_iterations sweeps for every chain in jitted chunks.

        Returns:
            Dict of host record arrays with leading axes (n_chains, n_records)
        """
        run_params = self.run_params
        n_records = n_iterations // run_params.THIN
        leftover = n_iterations - n_records * run_params.THIN
        chunk_size = run_params.CHUNK_SIZE
        num_chunks = (n_records + chunk_size - 1) // chunk_size

        if self.verbose:
            logger.info(f"\n--- MCMC {phase.upper()} ---")
            logger.info(f"  {n_iterations} iterations, {n_records} records (thin={run_params.THIN})")

        accept_counts = jnp.zeros((run_params.NUM_CHAINS, len(self.move_names)), dtype=self.float_dtype)
        carry = (self._keys, self._states, accept_counts)

        start_time = time.perf_counter()
        chunks = []
        for i in range(num_chunks):
            length = min(chunk_size, n_records - i * chunk_size)
            carry, records = run_record_chunk(carry, self.ctx, run_params, length, record_params)
            chunks.append(jax.device_get(records))
            if self.verbose and i % max(1, num_chunks // 10) == 0:
                logger.info(f"  Chunk {i+1}/{num_chunks}...")

        if leftover > 0:
            carry = run_unrecorded(carry, self.ctx, run_params, leftover)

        jax.block_until_ready(carry)
        wall_time = time.perf_counter() - start_time
        self._keys, self._states, accept_counts = carry

        rates = acceptance_rates(jax.device_get(accept_counts), self._unit_counts,
                                 n_iterations, self.move_names)
        self._acceptance[phase] = rates
        if self.verbose:
            print_acceptance_summary(phase, rates)
            logger.info(f"  Wall Time: {timedelta(seconds=int(wall_time))} ({wall_time:.2f}s)")

        if not chunks:
            return self._empty_records(record_params)

        # (n_records, n_chains, ...) per chunk -> (n_chains, n_records, ...)
        return {
            key: np.moveaxis(np.concatenate([np.asarray(c[key]) for c in chunks], axis=0), 0, 1)
            for key in chunks[0]
        }

    # ------------------------------------------------------------------
    # Traces
    # ------------------------------------------------------------------

    def _empty_traces(self) -> Dict[str, np.ndarray]:
        n = self.run_params.NUM_CHAINS
        ds = self.dataset
        float_dtype = np.dtype(self.float_dtype)
        return {
            'loglike_burnin': np.zeros((n, 0), dtype=float_dtype),
            'loglike_sample': np.zeros((n, 0), dtype=float_dtype),
            'coi_store': np.zeros((n, 0, ds.num_samples), dtype=np.int32),
            'allele_freq_store': np.zeros((n, 0, ds.num_loci, ds.max_alleles), dtype=float_dtype),
            'eps_pos_store': np.zeros((n, 0), dtype=float_dtype),
            'eps_neg_store': np.zeros((n, 0), dtype=float_dtype),
            'mean_coi_store': np.zeros((n, 0), dtype=float_dtype),
        }

    def _empty_records(self, record_params: bool) -> Dict[str, np.ndarray]:
        empty = self._empty_traces()
        records = {'log_likelihood': empty['loglike_sample']}
        if record_params:
            for record_key, trace_name in _TRACE_NAMES.items():
                records[record_key] = empty[trace_name]
        return records

    def _append(self, trace_name: str, values: np.ndarray) -> None:
        self._traces[trace_name] = np.concatenate(
            [self._traces[trace_name], values.astype(self._traces[trace_name].dtype)], axis=1
        )

    @property
    def traces(self) -> Dict[str, np.ndarray]:
        return dict(self._traces)

    def chain_states(self):
        """Current stacked ChainState, transferred to the host."""
        return jax.device_get(self._states)

    def results(self) -> Dict[str, Any]:
        """
        Traces and acceptance rates of every chain.

        Returns:
            Dict with:
                loglike_burnin: (n_chains, burnin // thin)
                loglike_sample: (n_chains, samples // thin)
                coi_store: (n_chains, records, num_samples)
                allele_freq_store: (n_chains, records, num_loci, max_alleles)
                eps_pos_store, eps_neg_store, mean_coi_store: (n_chains, records)
                acceptance_rates: {phase: {move: (n_chains,)}}
        """
        results = self.traces
        results['acceptance_rates'] = {phase: dict(rates) for phase, rates in self._acceptance.items()}
        return results
