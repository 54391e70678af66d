"""
Move settings configuration.

This module defines the canonical ordering of move tuning values and prior
hyper-parameters, and builds the settings vector that every move receives.

Settings are stored in a JAX array of shape (MAX_SETTINGS,) for O(1) access
inside the jitted sweep. Moves read them by position using the SettingSlot
enum, so changing a proposal variance or a prior never forces the sweep
kernel to recompile (only array values change, not shapes).

To add a new setting:
1. Add it to SettingSlot enum
2. Add default value to SETTING_DEFAULTS
3. Use it in your move: settings[SettingSlot.NEW_SETTING]
4. Pass it in the run config: {'new_setting': value}
"""

from enum import IntEnum
import numpy as np
import jax.numpy as jnp


class SettingSlot(IntEnum):
    """
    Canonical slot indices for move settings.

    These map config key names to positions in the settings array.
    IntEnum values compile to simple integers - no runtime overhead.
    """
    # Proposal tuning
    COI_PROP_MEAN = 0          # Mean |delta| of the signed-geometric COI step
    ALLELE_FREQ_ALPHA = 1      # Concentration of the Dirichlet allele-frequency step
    ALLELE_FREQ_VAR = 2        # Variance of the logit-normal allele-frequency step
    EPS_POS_VAR = 3            # Random-walk variance for eps_pos
    EPS_NEG_VAR = 4            # Random-walk variance for eps_neg
    MEAN_COI_VAR = 5           # Random-walk variance for the COI Poisson mean
    # Priors
    MEAN_COI_SHAPE = 6         # Gamma prior shape on the COI Poisson mean
    MEAN_COI_SCALE = 7         # Gamma prior scale on the COI Poisson mean
    EPS_POS_ALPHA = 8          # Beta prior on eps_pos
    EPS_POS_BETA = 9
    EPS_NEG_ALPHA = 10         # Beta prior on eps_neg
    EPS_NEG_BETA = 11
    ALLELE_FREQ_CONCENTRATION = 12  # Symmetric Dirichlet prior on allele frequencies


# Default values for each setting
SETTING_DEFAULTS = {
    SettingSlot.COI_PROP_MEAN: 1.0,
    SettingSlot.ALLELE_FREQ_ALPHA: 1000.0,
    SettingSlot.ALLELE_FREQ_VAR: 0.1,
    SettingSlot.EPS_POS_VAR: 0.005,
    SettingSlot.EPS_NEG_VAR: 0.005,
    SettingSlot.MEAN_COI_VAR: 0.1,
    SettingSlot.MEAN_COI_SHAPE: 0.1,
    SettingSlot.MEAN_COI_SCALE: 10.0,
    SettingSlot.EPS_POS_ALPHA: 1.0,
    SettingSlot.EPS_POS_BETA: 1.0,
    SettingSlot.EPS_NEG_ALPHA: 1.0,
    SettingSlot.EPS_NEG_BETA: 1.0,
    SettingSlot.ALLELE_FREQ_CONCENTRATION: 1.0,
}

# Total number of settings (determines vector width)
MAX_SETTINGS = len(SettingSlot)


def setting_key(slot):
    """Config dict key for a slot, e.g. SettingSlot.EPS_POS_VAR -> 'eps_pos_var'."""
    return slot.name.lower()


def build_settings_vector(config, dtype=None):
    """
    Convert a run config dict into the settings vector.

    Args:
        config: Dict that may contain any of the lowercase slot names
        dtype: Optional JAX float dtype (defaults to the current JAX default)

    Returns:
        JAX array of shape (MAX_SETTINGS,)
    """
    vector = np.zeros(MAX_SETTINGS, dtype=np.float64)
    for slot, default in SETTING_DEFAULTS.items():
        vector[slot] = float(config.get(setting_key(slot), default))

    return jnp.asarray(vector, dtype=dtype)
