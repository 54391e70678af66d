"""
Move registry and sweep order.

A sweep applies every move once, in SWEEP_ORDER. Moves are selected at
Python level when the sweep kernel is traced, so a kernel only contains the
proposal kinds the run actually uses.
"""

from enum import IntEnum

from .allele_freq import make_allele_freq_move
from .coi import make_coi_move
from .error_rate import make_error_rate_move
from .genotype import make_genotype_move
from .mean_coi import make_mean_coi_move


class MoveType(IntEnum):
    """Moves in the order a sweep applies them."""
    COI = 0
    GENOTYPE = 1
    ALLELE_FREQ = 2
    EPS_POS = 3
    EPS_NEG = 4
    MEAN_COI = 5


# MoveType -> factory(run_params) -> Move
MOVE_REGISTRY = {
    MoveType.COI: lambda params: make_coi_move(params.COI_PROPOSAL),
    MoveType.GENOTYPE: lambda params: make_genotype_move(),
    MoveType.ALLELE_FREQ: lambda params: make_allele_freq_move(params.ALLELE_FREQ_PROPOSAL),
    MoveType.EPS_POS: lambda params: make_error_rate_move('eps_pos'),
    MoveType.EPS_NEG: lambda params: make_error_rate_move('eps_neg'),
    MoveType.MEAN_COI: lambda params: make_mean_coi_move(),
}

SWEEP_ORDER = tuple(sorted(MoveType))


def build_moves(run_params):
    """Instantiate the moves of one sweep, in SWEEP_ORDER."""
    return tuple(MOVE_REGISTRY[move_type](run_params) for move_type in SWEEP_ORDER)


def move_names():
    return [move_type.name.lower() for move_type in SWEEP_ORDER]
