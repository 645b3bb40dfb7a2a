"""Pydantic models for digester simulation inputs."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

from adm1.fractionation import ConventionalInfluent, SubstrateType
from adm1.integrators import INTEGRATORS
from adm1.parameters import P_ATM
from adm1.reactor import ReactorConfig


class ReactorInput(BaseModel):
    """Digester geometry and operating conditions."""
    V_liq: float = Field(gt=0, description="Liquid volume in m³")
    V_gas: Optional[float] = Field(None, gt=0, description="Headspace volume in m³ (default 10% of V_liq)")
    Q_in: Optional[float] = Field(None, gt=0, description="Feed flow rate in m³/day")
    hrt_days: Optional[float] = Field(None, gt=0, description="Hydraulic retention time in days (alternative to Q_in)")
    temperature_c: float = Field(35.0, gt=-273.15, description="Operating temperature in °C")
    pressure_bar: float = Field(P_ATM, gt=0, description="Headspace pressure in bar")

    @model_validator(mode="after")
    def _flow_or_hrt(self):
        if self.Q_in is None and self.hrt_days is None:
            raise ValueError("Either Q_in or hrt_days is required")
        return self

    def to_config(self) -> ReactorConfig:
        q_in = self.Q_in if self.Q_in is not None else self.V_liq / self.hrt_days
        return ReactorConfig(
            V_liq=self.V_liq,
            V_gas=self.V_gas if self.V_gas is not None else 0.1 * self.V_liq,
            Q_in=q_in,
            temperature=self.temperature_c,
            pressure=self.pressure_bar,
        )


class ConventionalInfluentInput(BaseModel):
    """Bulk feed measurements used for ADM1 fractionation."""
    substrate_type: SubstrateType = Field(SubstrateType.PRIMARY_SLUDGE, description="Fractionation preset")
    cod_mg_l: Optional[float] = Field(None, ge=0, description="Total COD in mg/L (preset typical value if omitted)")
    tkn_mg_l: Optional[float] = Field(None, ge=0, description="TKN in mg N/L (preset typical value if omitted)")
    nh4_n_mg_l: Optional[float] = Field(None, ge=0, description="Ammonia nitrogen in mg N/L")
    alkalinity_mg_l_caco3: float = Field(3000.0, ge=0, description="Alkalinity in mg/L as CaCO3")
    vs_mg_l: Optional[float] = Field(None, ge=0, description="Volatile solids in mg/L")
    ts_mg_l: Optional[float] = Field(None, ge=0, description="Total solids in mg/L")
    ph: float = Field(7.0, ge=0, le=14, description="Feed pH")
    temperature_c: float = Field(35.0, gt=-273.15, description="Feed temperature in °C")

    def to_conventional(self, flow_m3d: float) -> ConventionalInfluent:
        from adm1.fractionation import SUBSTRATE_CHARACTERISTICS

        typical = SUBSTRATE_CHARACTERISTICS[self.substrate_type]
        return ConventionalInfluent(
            Q=flow_m3d,
            COD=self.cod_mg_l if self.cod_mg_l is not None else typical.COD_typical,
            TKN=self.tkn_mg_l if self.tkn_mg_l is not None else typical.TKN_typical,
            NH4_N=self.nh4_n_mg_l or 0.0,
            alkalinity=self.alkalinity_mg_l_caco3,
            VS=self.vs_mg_l if self.vs_mg_l is not None else typical.VS_typical,
            TS=self.ts_mg_l or 0.0,
            pH=self.ph,
            temperature=self.temperature_c,
        )


class SimulationSettings(BaseModel):
    """Time window and numerics of a dynamic run."""
    end_time_days: float = Field(50.0, gt=0, description="Simulated duration in days")
    time_step_days: Optional[float] = Field(None, gt=0, description="Integration step in days (solver default if omitted)")
    output_interval_days: float = Field(1.0, gt=0, description="Sampling interval in days")
    solver: str = Field("bdf", description="Integrator: euler, rk4 or bdf")
    ph_method: str = Field("newton", description="pH solver: newton or brent")
    cation_mol_m3: float = Field(0.0, ge=0, description="Background strong cations in mol/m³")
    anion_mol_m3: float = Field(0.0, ge=0, description="Background strong anions in mol/m³")
    max_steps: Optional[int] = Field(None, ge=1, description="Step ceiling for bounded runtime")

    @field_validator("solver")
    @classmethod
    def _known_solver(cls, v: str) -> str:
        if v not in INTEGRATORS:
            raise ValueError(f"solver must be one of {sorted(INTEGRATORS)}")
        return v

    @field_validator("ph_method")
    @classmethod
    def _known_ph_method(cls, v: str) -> str:
        if v not in ("newton", "brent"):
            raise ValueError("ph_method must be 'newton' or 'brent'")
        return v


# Free-form dictionary type for FastMCP tool parameters
class AnyDict(RootModel[Dict[str, Any]]):
    pass
