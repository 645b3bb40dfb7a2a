"""Tools for configuring the digester and characterising its feed."""

import json
import logging
from typing import Dict, Any, Optional

from pydantic import ValidationError

from adm1.exceptions import InvalidConfigurationError
from adm1.fractionation import (
    SUBSTRATE_CHARACTERISTICS,
    SubstrateType,
    fractionate_influent,
    get_fractionation,
    validate_adm1_state,
)
from adm1.state import ADM1State
from core.models import AnyDict, ConventionalInfluentInput, ReactorInput
from core.state import design_state
from core.utils import coerce_to_dict, to_float

logger = logging.getLogger(__name__)


async def configure_digester(
    V_liq: float,
    hrt_days: Optional[float] = None,
    Q_in: Optional[float] = None,
    V_gas: Optional[float] = None,
    temperature_c: float = 35.0,
    pressure_bar: Optional[float] = None
) -> Dict[str, Any]:
    """
    Configure the digester geometry and operating conditions.

    Args:
        V_liq: Liquid volume (m³)
        hrt_days: Hydraulic retention time (days); used when Q_in is omitted
        Q_in: Feed flow rate (m³/day)
        V_gas: Headspace volume (m³), default 10% of V_liq
        temperature_c: Operating temperature (°C)
        pressure_bar: Headspace pressure (bar), default atmospheric

    Returns:
        Dictionary containing:
        - status: "success" or "error"
        - reactor: Stored reactor configuration including HRT
        - validation: Warnings on atypical operating conditions
        - message: Status message
    """
    try:
        fields = {
            "V_liq": V_liq,
            "hrt_days": hrt_days,
            "Q_in": Q_in,
            "V_gas": V_gas,
            "temperature_c": temperature_c,
        }
        if pressure_bar is not None:
            fields["pressure_bar"] = pressure_bar
        reactor = ReactorInput(**fields).to_config()
    except (ValidationError, InvalidConfigurationError) as e:
        return {
            "status": "error",
            "message": f"Invalid reactor configuration: {str(e)}"
        }

    warnings = []
    if reactor.temperature < 20 or reactor.temperature > 60:
        warnings.append(f"Temperature {reactor.temperature}°C outside typical range (20-60°C)")
    if reactor.hrt < 10:
        warnings.append(f"HRT {reactor.hrt:.1f} d is short; methanogen washout is likely")
    if reactor.V_gas / reactor.V_liq < 0.05:
        warnings.append("Headspace below 5% of liquid volume makes the gas phase very stiff")

    if reactor.temperature < 25:
        regime = "psychrophilic"
    elif reactor.temperature < 45:
        regime = "mesophilic"
    else:
        regime = "thermophilic"

    design_state.reactor = reactor
    logger.info(f"Digester configured: V_liq={reactor.V_liq} m3, HRT={reactor.hrt:.1f} d, T={reactor.temperature}°C")

    return {
        "status": "success",
        "reactor": reactor.to_dict(),
        "derived_parameters": {"temperature_regime": regime},
        "validation": {
            "warnings": warnings,
            "valid": len(warnings) == 0
        },
        "message": f"Digester configured with HRT {reactor.hrt:.1f} days"
    }


async def characterize_influent(
    substrate_type: str = "primary_sludge",
    current_values: Optional[AnyDict] = None,
    adm1_state: Optional[AnyDict] = None
) -> Dict[str, Any]:
    """
    Characterise the digester feed as an ADM1 influent state.

    Conventional measurements are fractionated with the preset of the
    chosen substrate; missing measurements fall back to the typical values
    of that substrate. A complete ADM1 state may be given instead.

    Args:
        substrate_type: Fractionation preset. Options: primary_sludge,
                        waste_activated_sludge, mixed_sludge, food_waste,
                        cattle_manure, pig_manure, chicken_manure,
                        energy_crops, custom
        current_values: Optional measurements, e.g. cod_mg_l, tkn_mg_l,
                        nh4_n_mg_l, alkalinity_mg_l_caco3, vs_mg_l, ph
        adm1_state: Optional explicit ADM1 component dictionary (g COD/m³,
                    S_IC and S_IN in mol/m³), bypassing fractionation

    Returns:
        Dictionary containing:
        - status: "success" or "error"
        - adm1_influent: ADM1 influent state
        - conventional: Bulk measurements used (fractionation only)
        - substrate: Typical characteristics of the substrate
        - validation: Component validation results
    """
    try:
        if design_state.reactor is None:
            return {
                "status": "error",
                "message": "Digester not configured. Run configure_digester first."
            }

        explicit_state = coerce_to_dict(adm1_state)
        if explicit_state:
            validation = validate_adm1_state(explicit_state)
            if not validation["valid"]:
                return {
                    "status": "error",
                    "message": "Invalid ADM1 state",
                    "validation": validation
                }
            influent = ADM1State.from_dict({k: to_float(v) or 0.0 for k, v in explicit_state.items()})
            design_state.adm1_influent = influent
            design_state.conventional_influent = None
            design_state.substrate_type = "explicit"
            return {
                "status": "success",
                "adm1_influent": influent.to_dict(),
                "validation": validation,
                "message": "Stored explicit ADM1 influent state"
            }

        current_values = coerce_to_dict(current_values) or {}
        try:
            substrate = SubstrateType(substrate_type)
        except ValueError:
            return {
                "status": "error",
                "message": f"Invalid substrate type: {substrate_type}",
                "valid_types": [s.value for s in SubstrateType]
            }

        # Parameter definitions with the substrate's typical values as defaults
        typical = SUBSTRATE_CHARACTERISTICS[substrate]
        parameter_definitions = [
            ("cod_mg_l", "COD concentration (mg/L)", typical.COD_typical),
            ("tkn_mg_l", "TKN concentration (mg/L)", typical.TKN_typical),
            ("vs_mg_l", "VS concentration (mg/L)", typical.VS_typical),
            ("alkalinity_mg_l_caco3", "Alkalinity (mg/L as CaCO3)", 3000.0),
            ("nh4_n_mg_l", "Ammonia nitrogen (mg N/L)", None),
            ("ts_mg_l", "TS concentration (mg/L)", None),
            ("ph", "pH", 7.0),
        ]

        collected = {}
        for param_name, prompt, default in parameter_definitions:
            if param_name == "alkalinity_mg_l_caco3" and param_name not in current_values \
                    and "alkalinity_meq_l" in current_values:
                # Convert meq/L to mg/L as CaCO3 (multiply by 50)
                value = to_float(current_values["alkalinity_meq_l"])
                value = value * 50.0 if value is not None else None
            else:
                value = to_float(current_values.get(param_name, default))
            if value is None and param_name in current_values:
                logger.warning(f"Invalid value for {param_name}: {current_values[param_name]}, using default {default}")
                value = default
            if value is not None:
                collected[param_name] = value

        inputs = ConventionalInfluentInput(
            substrate_type=substrate,
            temperature_c=design_state.reactor.temperature,
            **collected
        )
        conventional = inputs.to_conventional(design_state.reactor.Q_in)
        influent = fractionate_influent(conventional, get_fractionation(substrate))

        warnings = []
        if conventional.VS > 0:
            cod_vs = conventional.COD / conventional.VS
            if cod_vs < 1.2 or cod_vs > 2.0:
                warnings.append(f"COD/VS ratio {cod_vs:.2f} outside typical range (1.2-2.0)")
        if conventional.NH4_N > conventional.TKN:
            warnings.append("NH4-N cannot exceed TKN")

        design_state.conventional_influent = conventional
        design_state.substrate_type = substrate.value
        design_state.adm1_influent = influent
        logger.info(f"Influent characterised as {substrate.value}: COD {conventional.COD:.0f} mg/L")

        olr = conventional.COD * conventional.Q / design_state.reactor.V_liq / 1000.0
        return {
            "status": "success",
            "adm1_influent": influent.to_dict(),
            "conventional": conventional.to_dict(),
            "substrate": typical.to_dict(),
            "derived_parameters": {
                "organic_loading_rate_kg_cod_m3_d": olr,
                "soluble_cod_mg_l": influent.soluble_cod,
            },
            "validation": {
                "warnings": warnings,
                "valid": len(warnings) == 0
            },
            "message": f"Fractionated {substrate.value} influent into {len(influent.to_dict())} ADM1 components"
        }

    except (ValidationError, InvalidConfigurationError) as e:
        return {
            "status": "error",
            "message": f"Invalid influent characterisation: {str(e)}"
        }
    except Exception as e:
        logger.error(f"Error in characterize_influent: {str(e)}", exc_info=True)
        return {
            "status": "error",
            "message": f"Failed to characterise influent: {str(e)}"
        }


async def load_adm1_state(file_path: str = "./adm1_state.json") -> Dict[str, Any]:
    """
    Load an ADM1 influent state from a JSON file.

    Args:
        file_path: Path to a JSON object of ADM1 components

    Returns:
        Same structure as characterize_influent with an explicit state
    """
    try:
        with open(file_path, "r") as f:
            adm1_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        return {"status": "error", "message": f"Failed to load ADM1 state: {str(e)}"}

    if not isinstance(adm1_data, dict) or not adm1_data:
        return {"status": "error", "message": f"{file_path} does not contain an ADM1 component object"}
    result = await characterize_influent(adm1_state=adm1_data)
    if result["status"] == "success":
        result["message"] = f"Loaded {len(adm1_data)} ADM1 components from {file_path}"
    return result
