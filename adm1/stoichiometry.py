"""
Petersen (stoichiometric) matrix of ADM1.

Row *i* holds the coefficients of the 24 liquid components in process *i*.
Organic entries follow the COD split of each reaction; the inorganic carbon
and inorganic nitrogen columns are then set so every row closes its carbon
and nitrogen balances exactly.
"""

import logging
from typing import Dict, Tuple

import numpy as np

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import StoichiometricParameters
from adm1.state import COD_COMPONENTS, N_STATES, STATE_INDEX

logger = logging.getLogger(__name__)

# (identifier, display name, rate expression)
PROCESSES: Tuple[Tuple[str, str, str], ...] = (
    ("disintegration", "Disintegration", "k_dis * X_c"),
    ("hydrolysis_carbohydrates", "Hydrolysis of Carbohydrates", "k_hyd_ch * X_ch"),
    ("hydrolysis_proteins", "Hydrolysis of Proteins", "k_hyd_pr * X_pr"),
    ("hydrolysis_lipids", "Hydrolysis of Lipids", "k_hyd_li * X_li"),
    ("uptake_sugars", "Uptake of Sugars", "k_m_su * M(S_su) * X_su * I_acidogens"),
    ("uptake_amino_acids", "Uptake of Amino Acids", "k_m_aa * M(S_aa) * X_aa * I_acidogens"),
    ("uptake_LCFA", "Uptake of LCFA", "k_m_fa * M(S_fa) * X_fa * I_acetogens * I_h2_fa"),
    ("uptake_valerate", "Uptake of Valerate", "k_m_c4 * M(S_va) * X_c4 * I_acetogens * I_h2_c4 * S_va/(S_va+S_bu)"),
    ("uptake_butyrate", "Uptake of Butyrate", "k_m_c4 * M(S_bu) * X_c4 * I_acetogens * I_h2_c4 * S_bu/(S_va+S_bu)"),
    ("uptake_propionate", "Uptake of Propionate", "k_m_pro * M(S_pro) * X_pro * I_acetogens * I_h2_pro"),
    ("uptake_acetate", "Uptake of Acetate", "k_m_ac * M(S_ac) * X_ac * I_acetoclastic"),
    ("uptake_hydrogen", "Uptake of Hydrogen", "k_m_h2 * M(S_h2) * X_h2 * I_hydrogenotrophic"),
    ("decay_X_su", "Decay of Sugar Degraders", "k_dec * X_su"),
    ("decay_X_aa", "Decay of Amino Acid Degraders", "k_dec * X_aa"),
    ("decay_X_fa", "Decay of LCFA Degraders", "k_dec * X_fa"),
    ("decay_X_c4", "Decay of Valerate/Butyrate Degraders", "k_dec * X_c4"),
    ("decay_X_pro", "Decay of Propionate Degraders", "k_dec * X_pro"),
    ("decay_X_ac", "Decay of Acetoclastic Methanogens", "k_dec * X_ac"),
    ("decay_X_h2", "Decay of Hydrogenotrophic Methanogens", "k_dec * X_h2"),
)
PROCESS_NAMES = tuple(p[0] for p in PROCESSES)
PROCESS_INDEX = {name: i for i, name in enumerate(PROCESS_NAMES)}
N_PROCESSES = len(PROCESSES)

DISINTEGRATION_TOLERANCE = 1e-6

_DECAY_BIOMASS = ("X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2")


def disintegration_fraction_sum(stoich: StoichiometricParameters) -> float:
    return stoich.f_sI_xc + stoich.f_xI_xc + stoich.f_ch_xc + stoich.f_pr_xc + stoich.f_li_xc


def carbon_contents(stoich: StoichiometricParameters) -> np.ndarray:
    """Carbon content of every component [mol C per unit of the component]."""
    c = np.zeros(N_STATES)
    for name, value in {
        "S_su": stoich.C_su, "S_aa": stoich.C_aa, "S_fa": stoich.C_fa,
        "S_va": stoich.C_va, "S_bu": stoich.C_bu, "S_pro": stoich.C_pro,
        "S_ac": stoich.C_ac, "S_ch4": stoich.C_ch4, "S_IC": 1.0, "S_I": stoich.C_sI,
        "X_c": stoich.C_xc, "X_ch": stoich.C_ch, "X_pr": stoich.C_pr, "X_li": stoich.C_li,
        "X_I": stoich.C_xI,
    }.items():
        c[STATE_INDEX[name]] = value
    for name in _DECAY_BIOMASS:
        c[STATE_INDEX[name]] = stoich.C_bac
    return c


def nitrogen_contents(stoich: StoichiometricParameters) -> np.ndarray:
    """Nitrogen content of every component [mol N per unit of the component]."""
    n = np.zeros(N_STATES)
    for name, value in {
        "S_aa": stoich.N_aa, "S_IN": 1.0, "S_I": stoich.N_I,
        "X_c": stoich.N_xc, "X_pr": stoich.N_aa, "X_I": stoich.N_I,
    }.items():
        n[STATE_INDEX[name]] = value
    for name in _DECAY_BIOMASS:
        n[STATE_INDEX[name]] = stoich.N_bac
    return n


def cod_mask() -> np.ndarray:
    """1 for components counted as COD, 0 for S_IC and S_IN."""
    mask = np.zeros(N_STATES)
    for name in COD_COMPONENTS:
        mask[STATE_INDEX[name]] = 1.0
    return mask


def _organic_rows(s: StoichiometricParameters) -> Dict[str, Dict[str, float]]:
    return {
        "disintegration": {
            "X_c": -1.0, "S_I": s.f_sI_xc, "X_ch": s.f_ch_xc,
            "X_pr": s.f_pr_xc, "X_li": s.f_li_xc, "X_I": s.f_xI_xc,
        },
        "hydrolysis_carbohydrates": {"X_ch": -1.0, "S_su": 1.0},
        "hydrolysis_proteins": {"X_pr": -1.0, "S_aa": 1.0},
        "hydrolysis_lipids": {"X_li": -1.0, "S_su": 1.0 - s.f_fa_li, "S_fa": s.f_fa_li},
        "uptake_sugars": {
            "S_su": -1.0,
            "S_bu": (1 - s.Y_su) * s.f_bu_su,
            "S_pro": (1 - s.Y_su) * s.f_pro_su,
            "S_ac": (1 - s.Y_su) * s.f_ac_su,
            "S_h2": (1 - s.Y_su) * s.f_h2_su,
            "X_su": s.Y_su,
        },
        "uptake_amino_acids": {
            "S_aa": -1.0,
            "S_va": (1 - s.Y_aa) * s.f_va_aa,
            "S_bu": (1 - s.Y_aa) * s.f_bu_aa,
            "S_pro": (1 - s.Y_aa) * s.f_pro_aa,
            "S_ac": (1 - s.Y_aa) * s.f_ac_aa,
            "S_h2": (1 - s.Y_aa) * s.f_h2_aa,
            "X_aa": s.Y_aa,
        },
        "uptake_LCFA": {
            "S_fa": -1.0,
            "S_ac": (1 - s.Y_fa) * s.f_ac_fa,
            "S_h2": (1 - s.Y_fa) * s.f_h2_fa,
            "X_fa": s.Y_fa,
        },
        "uptake_valerate": {
            "S_va": -1.0,
            "S_pro": (1 - s.Y_c4) * s.f_pro_va,
            "S_ac": (1 - s.Y_c4) * s.f_ac_va,
            "S_h2": (1 - s.Y_c4) * s.f_h2_va,
            "X_c4": s.Y_c4,
        },
        "uptake_butyrate": {
            "S_bu": -1.0,
            "S_ac": (1 - s.Y_c4) * s.f_ac_bu,
            "S_h2": (1 - s.Y_c4) * s.f_h2_bu,
            "X_c4": s.Y_c4,
        },
        "uptake_propionate": {
            "S_pro": -1.0,
            "S_ac": (1 - s.Y_pro) * s.f_ac_pro,
            "S_h2": (1 - s.Y_pro) * s.f_h2_pro,
            "X_pro": s.Y_pro,
        },
        "uptake_acetate": {"S_ac": -1.0, "S_ch4": 1 - s.Y_ac, "X_ac": s.Y_ac},
        "uptake_hydrogen": {"S_h2": -1.0, "S_ch4": 1 - s.Y_h2, "X_h2": s.Y_h2},
        **{f"decay_{x}": {x: -1.0, "X_c": 1.0} for x in _DECAY_BIOMASS},
    }


def build_stoichiometric_matrix(stoich: StoichiometricParameters) -> np.ndarray:
    """
    Build the 19 x 24 Petersen matrix.

    Parameters
    ----------
    stoich : StoichiometricParameters
        Yields, product fractions and elemental contents.

    Returns
    -------
    numpy.ndarray
        ``nu[i, j]``: coefficient of component ``j`` in process ``i``.

    Raises
    ------
    InvalidConfigurationError
        If the disintegration fractions do not sum to 1.
    """
    total = disintegration_fraction_sum(stoich)
    if abs(total - 1.0) > DISINTEGRATION_TOLERANCE:
        raise InvalidConfigurationError(f"Disintegration fractions must sum to 1.0, got {total:.6f}")

    nu = np.zeros((N_PROCESSES, N_STATES))
    for process, coefficients in _organic_rows(stoich).items():
        row = PROCESS_INDEX[process]
        for component, value in coefficients.items():
            nu[row, STATE_INDEX[component]] = value

    # Inorganic C and N absorb whatever the organic coefficients leave unbalanced
    i_ic, i_in = STATE_INDEX["S_IC"], STATE_INDEX["S_IN"]
    c = carbon_contents(stoich)
    n = nitrogen_contents(stoich)
    c[i_ic] = 0.0
    n[i_in] = 0.0
    nu[:, i_ic] = -(nu @ c)
    nu[:, i_in] = -(nu @ n)
    return nu


def get_stoichiometric_coefficient(matrix: np.ndarray, process_index: int, component_index: int) -> float:
    """Coefficient lookup; out-of-range indices give 0."""
    if not 0 <= process_index < N_PROCESSES or not 0 <= component_index < N_STATES:
        return 0.0
    return float(matrix[process_index, component_index])


def row_balances(matrix: np.ndarray, stoich: StoichiometricParameters) -> Dict[str, np.ndarray]:
    """Net COD, carbon and nitrogen of each process row (all ~0 for a closed matrix)."""
    return {
        "cod": matrix @ cod_mask(),
        "carbon": matrix @ carbon_contents(stoich),
        "nitrogen": matrix @ nitrogen_contents(stoich),
    }
