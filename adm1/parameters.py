"""
ADM1 parameter sets.

Four immutable records (kinetic, stoichiometric, physico-chemical and
temperature coefficients) plus a bundle and a factory. Values are the
mesophilic (35 degC) defaults of Batstone et al. (2002), expressed in the
engine's units:

- organic concentrations in g COD/m3
- inorganic carbon in mol C/m3, inorganic nitrogen in mol N/m3
- carbon contents in mol C/g COD, nitrogen contents in mol N/g COD
- rates in 1/d, gas-phase quantities in kmol/m3

Parameter objects are never mutated. Temperature correction and user
overrides return new instances, so concurrent runs cannot contaminate
each other.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict

from adm1.exceptions import InvalidConfigurationError

# Universal gas constant [J/(mol K)]
R = 8.314
# Gas constant in bar m3/(kmol K), used for headspace partial pressures
R_BAR = 0.083145
P_ATM = 1.01325
T_ZERO_C = 273.15

COD_CH4 = 64.0  # g COD/mol CH4
COD_H2 = 16.0  # g COD/mol H2
VM_STP = 22.414  # m3/kmol at 0 degC, 1 atm
ENERGY_CH4_KWH_PER_NM3 = 10.0

# g COD per mol of each volatile fatty acid
COD_PER_MOL_VA = 208.0
COD_PER_MOL_BU = 160.0
COD_PER_MOL_PRO = 112.0
COD_PER_MOL_AC = 64.0

N_G_PER_MOL = 14.0
CACO3_G_PER_EQ = 50.0


class _ParameterSet:
    """Shared helpers for the frozen parameter dataclasses."""

    def with_overrides(self, **overrides: float):
        """Return a copy with the named coefficients replaced."""
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown {type(self).__name__} field(s): {', '.join(unknown)}"
            )
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> Dict[str, float]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class KineticParameters(_ParameterSet):
    # Disintegration and hydrolysis [1/d]
    k_dis: float = 0.5
    k_hyd_ch: float = 10.0
    k_hyd_pr: float = 10.0
    k_hyd_li: float = 10.0

    # Maximum specific uptake rates [g COD substrate/(g COD biomass d)]
    k_m_su: float = 30.0
    k_m_aa: float = 50.0
    k_m_fa: float = 6.0
    k_m_c4: float = 20.0
    k_m_pro: float = 13.0
    k_m_ac: float = 8.0
    k_m_h2: float = 35.0

    # Half-saturation constants [g COD/m3]
    K_S_su: float = 500.0
    K_S_aa: float = 300.0
    K_S_fa: float = 400.0
    K_S_c4: float = 200.0
    K_S_pro: float = 100.0
    K_S_ac: float = 150.0
    K_S_h2: float = 7e-3

    k_dec: float = 0.02

    # Hydrogen inhibition [g COD/m3]
    K_I_h2_fa: float = 5e-3
    K_I_h2_c4: float = 1e-2
    K_I_h2_pro: float = 3.5e-3
    # Free ammonia inhibition of acetoclastic methanogens [mol N/m3]
    K_I_nh3: float = 1.8
    # Inorganic nitrogen limitation [mol N/m3]
    K_S_IN: float = 0.1

    # pH bounds: lower-bound type for aa, range type for ac and h2
    pH_UL_aa: float = 5.5
    pH_LL_aa: float = 4.0
    pH_UL_ac: float = 8.5
    pH_LL_ac: float = 6.0
    pH_UL_h2: float = 8.5
    pH_LL_h2: float = 5.0


@dataclass(frozen=True)
class StoichiometricParameters(_ParameterSet):
    # Composite disintegration products (fractions of X_c COD)
    f_sI_xc: float = 0.1
    f_xI_xc: float = 0.2
    f_ch_xc: float = 0.2
    f_pr_xc: float = 0.2
    f_li_xc: float = 0.3
    # LCFA fraction of hydrolysed lipids, the remainder is glycerol (sugars)
    f_fa_li: float = 0.95

    # Biomass yields [g COD biomass/g COD substrate]
    Y_su: float = 0.10
    Y_aa: float = 0.08
    Y_fa: float = 0.06
    Y_c4: float = 0.06
    Y_pro: float = 0.04
    Y_ac: float = 0.05
    Y_h2: float = 0.06

    # Sugar fermentation products
    f_bu_su: float = 0.13
    f_pro_su: float = 0.27
    f_ac_su: float = 0.41
    f_h2_su: float = 0.19

    # Amino acid fermentation products
    f_va_aa: float = 0.23
    f_bu_aa: float = 0.26
    f_pro_aa: float = 0.05
    f_ac_aa: float = 0.40
    f_h2_aa: float = 0.06

    # Fixed acetogenic product splits
    f_ac_fa: float = 0.7
    f_h2_fa: float = 0.3
    f_pro_va: float = 0.54
    f_ac_va: float = 0.31
    f_h2_va: float = 0.15
    f_ac_bu: float = 0.8
    f_h2_bu: float = 0.2
    f_ac_pro: float = 0.57
    f_h2_pro: float = 0.43

    # Carbon contents [mol C/g COD]
    C_xc: float = 0.02786
    C_sI: float = 0.03
    C_ch: float = 0.0313
    C_pr: float = 0.03
    C_li: float = 0.022
    C_xI: float = 0.03
    C_su: float = 0.0313
    C_aa: float = 0.03
    C_fa: float = 0.0217
    C_va: float = 0.024
    C_bu: float = 0.025
    C_pro: float = 0.0268
    C_ac: float = 0.0313
    C_bac: float = 0.0313
    C_ch4: float = 0.0156

    # Nitrogen contents [mol N/g COD]
    N_xc: float = 0.00286
    N_I: float = 0.00286
    N_aa: float = 0.007
    N_bac: float = 0.00571


@dataclass(frozen=True)
class PhysicoChemicalParameters(_ParameterSet):
    # Acid dissociation constants at T_ref [kmol/m3]
    K_a_va: float = 1.38e-5
    K_a_bu: float = 1.51e-5
    K_a_pro: float = 1.32e-5
    K_a_ac: float = 1.74e-5
    K_a_co2: float = 4.94e-7
    K_a_IN: float = 1.11e-9
    K_w: float = 2.08e-14

    # Henry's constants at T_ref [kmol/(m3 bar)]
    K_H_h2: float = 7.38e-4
    K_H_ch4: float = 1.16e-3
    K_H_co2: float = 2.71e-2

    k_L_a: float = 200.0
    T_ref: float = 308.15

    # Van't Hoff enthalpies [J/mol]
    dH_va: float = 0.0
    dH_bu: float = 0.0
    dH_pro: float = 0.0
    dH_ac: float = -4600.0
    dH_co2: float = 7646.0
    dH_IN: float = 51965.0
    dH_w: float = 55900.0
    dH_H_h2: float = -4180.0
    dH_H_ch4: float = -14240.0
    dH_H_co2: float = -19410.0


@dataclass(frozen=True)
class TemperatureCoefficients(_ParameterSet):
    """Arrhenius activation energies [J/mol] relative to ``T_ref`` [degC]."""

    T_ref: float = 35.0
    E_a_k_dis: float = 20000.0
    E_a_k_hyd: float = 20000.0
    E_a_k_m_su: float = 30000.0
    E_a_k_m_aa: float = 30000.0
    E_a_k_m_fa: float = 30000.0
    E_a_k_m_c4: float = 30000.0
    E_a_k_m_pro: float = 30000.0
    E_a_k_m_ac: float = 40000.0
    E_a_k_m_h2: float = 40000.0
    E_a_k_dec: float = 20000.0


@dataclass(frozen=True)
class ADM1Parameters:
    kinetic: KineticParameters = field(default_factory=KineticParameters)
    stoich: StoichiometricParameters = field(default_factory=StoichiometricParameters)
    physchem: PhysicoChemicalParameters = field(default_factory=PhysicoChemicalParameters)
    temp_coeffs: TemperatureCoefficients = field(default_factory=TemperatureCoefficients)

    def with_overrides(
        self,
        kinetic: Dict[str, float] = None,
        stoich: Dict[str, float] = None,
        physchem: Dict[str, float] = None,
        temp_coeffs: Dict[str, float] = None,
    ) -> "ADM1Parameters":
        """Return a bundle with per-group overrides applied."""
        return ADM1Parameters(
            kinetic=self.kinetic.with_overrides(**(kinetic or {})),
            stoich=self.stoich.with_overrides(**(stoich or {})),
            physchem=self.physchem.with_overrides(**(physchem or {})),
            temp_coeffs=self.temp_coeffs.with_overrides(**(temp_coeffs or {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kinetic": self.kinetic.to_dict(),
            "stoich": self.stoich.to_dict(),
            "physchem": self.physchem.to_dict(),
            "temp_coeffs": self.temp_coeffs.to_dict(),
        }


def default_parameters(**group_overrides: Dict[str, float]) -> ADM1Parameters:
    """
    Build the default mesophilic parameter bundle.

    Parameters
    ----------
    **group_overrides
        Optional ``kinetic=``, ``stoich=``, ``physchem=`` or ``temp_coeffs=``
        dictionaries of coefficient overrides.

    Returns
    -------
    ADM1Parameters
        A fresh, immutable bundle.
    """
    unknown = set(group_overrides) - {"kinetic", "stoich", "physchem", "temp_coeffs"}
    if unknown:
        raise InvalidConfigurationError(f"Unknown parameter group(s): {', '.join(sorted(unknown))}")
    return ADM1Parameters().with_overrides(**group_overrides)
