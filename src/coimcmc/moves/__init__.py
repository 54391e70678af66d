"""
Metropolis-Hastings moves for the COI model.

Each move updates one group of parameters and is built from the same three
pieces (propose, log_target, commit), run by moves.common.metropolis_step.

To add a new move:
1. Create a new file in moves/ returning a Move from a make_* factory
2. Add a MoveType value and a MOVE_REGISTRY entry in moves/dispatch.py
3. Export it from this __init__.py

Each propose function returns its own Hastings term; there is no separate
symmetric/asymmetric handling in the engine.
"""

from .common import Move, metropolis_step
from .coi import make_coi_move
from .genotype import make_genotype_move
from .allele_freq import make_allele_freq_move
from .error_rate import make_error_rate_move
from .mean_coi import make_mean_coi_move
from .dispatch import MoveType, MOVE_REGISTRY, SWEEP_ORDER, build_moves, move_names

__all__ = [
    'Move',
    'metropolis_step',
    'make_coi_move',
    'make_genotype_move',
    'make_allele_freq_move',
    'make_error_rate_move',
    'make_mean_coi_move',
    'MoveType',
    'MOVE_REGISTRY',
    'SWEEP_ORDER',
    'build_moves',
    'move_names',
]
