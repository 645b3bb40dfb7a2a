"""
Gas-liquid transfer and biogas production.

Transfer follows Henry's law, ``rho = kLa * (C_liq - K_H * p_gas)`` in
kmol/(m3 d) of liquid. Headspace partial pressures come from the ideal gas
law at reactor temperature.
"""

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np

from adm1.acid_base import calculate_dissolved_co2
from adm1.parameters import (
    COD_CH4,
    COD_H2,
    ENERGY_CH4_KWH_PER_NM3,
    P_ATM,
    R_BAR,
    VM_STP,
    PhysicoChemicalParameters,
)
from adm1.state import ADM1State, GasPhase
from adm1.temperature import to_kelvin


@dataclass(frozen=True)
class GasTransfer:
    """Transfer rates [kmol/(m3 d)], positive from liquid to headspace."""

    rho_h2: float
    rho_ch4: float
    rho_co2: float
    p_gas_h2: float = 0.0
    p_gas_ch4: float = 0.0
    p_gas_co2: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.rho_h2, self.rho_ch4, self.rho_co2])

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class BiogasProduction:
    """Biogas flows and composition derived from transfer rates."""

    q_gas: float  # m3/d at operating conditions, dry
    q_ch4: float
    q_co2: float
    q_h2: float
    p_gas_h2: float  # bar
    p_gas_ch4: float
    p_gas_co2: float
    p_gas_h2o: float
    ch4_percentage: float
    co2_percentage: float
    Q_ch4_STP: float  # Nm3/d
    Q_co2_STP: float
    Q_h2_STP: float
    Q_total_STP: float
    energy_kWh: float  # kWh/d

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def water_vapour_pressure(temperature_c: float) -> float:
    """Saturated water vapour pressure [bar]."""
    T_K = to_kelvin(temperature_c)
    return 0.0313 * np.exp(5290.0 * (1.0 / 298.15 - 1.0 / T_K))


def partial_pressures(gas: GasPhase, temperature_c: float) -> np.ndarray:
    """Headspace partial pressures [bar] of H2, CH4 and CO2."""
    T_K = to_kelvin(temperature_c)
    return np.maximum(gas.to_array(), 0.0) * R_BAR * T_K


def calculate_gas_transfer(
    state: ADM1State,
    gas: GasPhase,
    params: PhysicoChemicalParameters,
    temperature_c: float,
    pH: float,
) -> GasTransfer:
    """
    Liquid-to-gas transfer of hydrogen, methane and carbon dioxide.

    Parameters
    ----------
    state : ADM1State
        Liquid state; S_h2 and S_ch4 in g COD/m3, S_IC in mol/m3.
    gas : GasPhase
        Headspace concentrations [kmol/m3].
    params : PhysicoChemicalParameters
        Temperature-corrected Henry's and dissociation constants.
    temperature_c : float
        Reactor temperature [degC].
    pH : float
        Current liquid pH, used to split inorganic carbon.

    Returns
    -------
    GasTransfer
    """
    p_h2, p_ch4, p_co2 = partial_pressures(gas, temperature_c)

    S_h2 = max(0.0, state.S_h2) / (COD_H2 * 1000.0)
    S_ch4 = max(0.0, state.S_ch4) / (COD_CH4 * 1000.0)
    S_co2 = calculate_dissolved_co2(state.S_IC, pH, params.K_a_co2) / 1000.0

    kla = params.k_L_a
    return GasTransfer(
        rho_h2=kla * (S_h2 - params.K_H_h2 * p_h2),
        rho_ch4=kla * (S_ch4 - params.K_H_ch4 * p_ch4),
        rho_co2=kla * (S_co2 - params.K_H_co2 * p_co2),
        p_gas_h2=float(p_h2),
        p_gas_ch4=float(p_ch4),
        p_gas_co2=float(p_co2),
    )


def calculate_biogas_production(
    transfer: GasTransfer,
    V_liq: float,
    V_gas: float,
    temperature_c: float,
    pressure: float = P_ATM,
) -> BiogasProduction:
    """
    Convert transfer rates into biogas flows, composition and energy.

    Net absorption (negative transfer) contributes no production. With no
    gas produced all percentages are 0.
    """
    T_K = to_kelvin(temperature_c)
    n_h2 = max(0.0, transfer.rho_h2 * V_liq)  # kmol/d
    n_ch4 = max(0.0, transfer.rho_ch4 * V_liq)
    n_co2 = max(0.0, transfer.rho_co2 * V_liq)

    q_h2 = n_h2 * R_BAR * T_K / pressure
    q_ch4 = n_ch4 * R_BAR * T_K / pressure
    q_co2 = n_co2 * R_BAR * T_K / pressure
    q_gas = q_h2 + q_ch4 + q_co2

    p_h2o = float(water_vapour_pressure(temperature_c))
    p_dry = max(0.0, pressure - p_h2o)
    if q_gas > 0:
        share_h2, share_ch4, share_co2 = q_h2 / q_gas, q_ch4 / q_gas, q_co2 / q_gas
    else:
        share_h2 = share_ch4 = share_co2 = 0.0

    Q_ch4 = n_ch4 * VM_STP
    Q_co2 = n_co2 * VM_STP
    Q_h2 = n_h2 * VM_STP
    return BiogasProduction(
        q_gas=q_gas,
        q_ch4=q_ch4,
        q_co2=q_co2,
        q_h2=q_h2,
        p_gas_h2=share_h2 * p_dry,
        p_gas_ch4=share_ch4 * p_dry,
        p_gas_co2=share_co2 * p_dry,
        p_gas_h2o=p_h2o,
        ch4_percentage=share_ch4 * 100.0,
        co2_percentage=share_co2 * 100.0,
        Q_ch4_STP=Q_ch4,
        Q_co2_STP=Q_co2,
        Q_h2_STP=Q_h2,
        Q_total_STP=Q_ch4 + Q_co2 + Q_h2,
        energy_kWh=Q_ch4 * ENERGY_CH4_KWH_PER_NM3,
    )


def gas_phase_derivatives(
    gas: GasPhase,
    transfer: GasTransfer,
    V_liq: float,
    V_gas: float,
    temperature_c: float,
    pressure: float = P_ATM,
) -> np.ndarray:
    """
    Headspace mass balance [kmol/(m3 d)].

    Gas leaves at the rate that keeps the headspace at ``pressure``, i.e.
    ``q_gas = R T / (P - p_H2O) * V_liq * sum(rho)``, never negative.
    """
    T_K = to_kelvin(temperature_c)
    rho = transfer.as_array()
    p_dry = max(pressure - float(water_vapour_pressure(temperature_c)), 1e-6)
    q_gas = max(0.0, R_BAR * T_K / p_dry * V_liq * float(rho.sum()))
    return rho * V_liq / V_gas - np.maximum(gas.to_array(), 0.0) * q_gas / V_gas
