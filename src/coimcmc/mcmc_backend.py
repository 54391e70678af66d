"""
MCMC Backend - Main Entry Point.

This module provides run_mcmc(), the one-call entry point that takes raw
genotyping input and run options and returns the sampler's traces. The
implementation is split across several modules:

- data: GenotypingDataset (input validation and padding)
- lookup: NumericLookup (log-gamma table)
- mcmc.engine: MCMCEngine (chains, phases, traces)
- error_handling: Config validation and trace diagnostics
"""

from datetime import datetime
from typing import Any, Dict

import jax

from .data import GenotypingDataset
from .error_handling import diagnose_traces, print_diagnostics, validate_mcmc_config
from .lookup import NumericLookup
from .mcmc.config import clean_config
from .mcmc.engine import MCMCEngine

import logging
logger = logging.getLogger('coimcmc')


# Keys of args that are data, not run configuration
_DATA_KEYS = ('data', 'is_missing')


def run_mcmc(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run the COI sampler on nested genotyping data.

    Args:
        args: Dict with
            data: Nested [locus][sample][allele] 0/1 presence calls
            is_missing: Optional nested [locus][sample] booleans
            plus any run configuration key (see mcmc.config.clean_config)

    Returns:
        Dict with:
            loglike_burnin, loglike_sample: (n_chains, records)
            coi_store: (n_chains, records, num_samples)
            allele_freq_store: (n_chains, records, num_loci, max_alleles)
            eps_pos_store, eps_neg_store, mean_coi_store: (n_chains, records)
            acceptance_rates: {phase: {move: (n_chains,)}}
            diagnostics: Issues/warnings/info from diagnose_traces
            config: Cleaned run configuration

    Raises:
        KeyError: If args has no 'data'
        GenotypingDataError: Malformed genotyping input
        ConfigurationError: Invalid run configuration
    """
    if 'data' not in args:
        raise KeyError("args must contain 'data'")

    mcmc_config = clean_config({k: v for k, v in args.items() if k not in _DATA_KEYS})

    if mcmc_config['verbose']:
        logger.info("Validating MCMC configuration...")
    validate_mcmc_config(mcmc_config)

    dataset = GenotypingDataset.from_nested(args['data'], args.get('is_missing'))
    lookup = NumericLookup.build(mcmc_config['max_coi'])

    if mcmc_config['verbose']:
        logger.info(f"Starting sampling at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info(f"JAX backend: {jax.default_backend()}")

    engine = MCMCEngine(dataset, mcmc_config, lookup=lookup)
    results = engine.run()

    diagnostics = diagnose_traces(results, {})
    if mcmc_config['verbose']:
        logger.info("\n--- Post-Run Diagnostics ---")
        print_diagnostics(diagnostics)
    elif diagnostics['issues']:
        print_diagnostics(diagnostics)

    results['diagnostics'] = diagnostics
    results['config'] = engine.config
    return results
