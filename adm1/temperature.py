"""Temperature correction of ADM1 rate and equilibrium constants."""

import dataclasses

import numpy as np

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import (
    R,
    T_ZERO_C,
    KineticParameters,
    PhysicoChemicalParameters,
    TemperatureCoefficients,
)

# Rate constant -> activation energy field
_ARRHENIUS_MAP = {
    "k_dis": "E_a_k_dis",
    "k_hyd_ch": "E_a_k_hyd",
    "k_hyd_pr": "E_a_k_hyd",
    "k_hyd_li": "E_a_k_hyd",
    "k_m_su": "E_a_k_m_su",
    "k_m_aa": "E_a_k_m_aa",
    "k_m_fa": "E_a_k_m_fa",
    "k_m_c4": "E_a_k_m_c4",
    "k_m_pro": "E_a_k_m_pro",
    "k_m_ac": "E_a_k_m_ac",
    "k_m_h2": "E_a_k_m_h2",
    "k_dec": "E_a_k_dec",
}

# Equilibrium constant -> reaction enthalpy field
_VANT_HOFF_MAP = {
    "K_a_va": "dH_va",
    "K_a_bu": "dH_bu",
    "K_a_pro": "dH_pro",
    "K_a_ac": "dH_ac",
    "K_a_co2": "dH_co2",
    "K_a_IN": "dH_IN",
    "K_w": "dH_w",
    "K_H_h2": "dH_H_h2",
    "K_H_ch4": "dH_H_ch4",
    "K_H_co2": "dH_H_co2",
}


def to_kelvin(temperature_c: float) -> float:
    """Convert degC to K, rejecting temperatures at or below absolute zero."""
    T_K = temperature_c + T_ZERO_C
    if not T_K > 0:
        raise InvalidConfigurationError(f"Temperature must be above absolute zero, got {temperature_c} degC")
    return T_K


def arrhenius_factor(E_a: float, T_ref_K: float, T_K: float) -> float:
    """exp((Ea/R)(1/Tref - 1/T))"""
    if T_ref_K <= 0 or T_K <= 0:
        raise InvalidConfigurationError("Temperatures for Arrhenius correction must be positive Kelvin values")
    return float(np.exp((E_a / R) * (1.0 / T_ref_K - 1.0 / T_K)))


def correct_kinetic_temperature(
    params: KineticParameters,
    temperature_c: float,
    coeffs: TemperatureCoefficients = None,
) -> KineticParameters:
    """
    Scale the rate constants of a kinetic parameter set to an operating temperature.

    Parameters
    ----------
    params : KineticParameters
        Base parameters, valid at ``coeffs.T_ref``.
    temperature_c : float
        Operating temperature [degC].
    coeffs : TemperatureCoefficients, optional
        Activation energies; defaults to the mesophilic set.

    Returns
    -------
    KineticParameters
        New instance. Half-saturation, inhibition and pH constants are unchanged.
    """
    coeffs = coeffs or TemperatureCoefficients()
    T_K = to_kelvin(temperature_c)
    T_ref_K = to_kelvin(coeffs.T_ref)
    corrected = {
        k: getattr(params, k) * arrhenius_factor(getattr(coeffs, ea), T_ref_K, T_K)
        for k, ea in _ARRHENIUS_MAP.items()
    }
    return dataclasses.replace(params, **corrected)


def correct_physicochemical_temperature(
    params: PhysicoChemicalParameters,
    temperature_c: float,
) -> PhysicoChemicalParameters:
    """
    Van't Hoff correction of dissociation and Henry's constants.

    The reference temperature is ``params.T_ref`` [K]; the enthalpies are
    carried on the parameter set itself so callers can override them.
    """
    T_K = to_kelvin(temperature_c)
    T_ref_K = params.T_ref
    corrected = {
        k: getattr(params, k) * arrhenius_factor(getattr(params, dh), T_ref_K, T_K)
        for k, dh in _VANT_HOFF_MAP.items()
    }
    return dataclasses.replace(params, **corrected)
