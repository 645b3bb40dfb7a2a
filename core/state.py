"""State management for digester simulation sessions."""

from typing import Any, Dict, Optional

from adm1.fractionation import ConventionalInfluent
from adm1.parameters import ADM1Parameters
from adm1.reactor import ReactorConfig
from adm1.state import ADM1State


class DigesterDesignState:
    """Manages state across tools for a digester simulation session."""

    def __init__(self):
        self.reactor: Optional[ReactorConfig] = None
        self.conventional_influent: Optional[ConventionalInfluent] = None
        self.substrate_type: Optional[str] = None
        self.adm1_influent: Optional[ADM1State] = None
        self.parameters: ADM1Parameters = ADM1Parameters()
        self.simulation_results = {}
        self.sensitivity_results = {}
        self.last_simulation = None  # Full SimulationResult for analysis tools

    def reset(self):
        """Reset all state."""
        self.__init__()

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary."""
        result = {
            "reactor": self.reactor.to_dict() if self.reactor else {},
            "conventional_influent": self.conventional_influent.to_dict() if self.conventional_influent else {},
            "substrate_type": self.substrate_type,
            "adm1_influent": self.adm1_influent.to_dict() if self.adm1_influent else {},
            "simulation_results": self.simulation_results,
            "sensitivity_results": self.sensitivity_results,
        }

        # Add lightweight simulation summary if available
        if self.last_simulation is not None:
            result["last_simulation_summary"] = {
                "phase": self.last_simulation.phase.value,
                "final_time": self.last_simulation.computation.final_time,
                "steady_state_reached": self.last_simulation.steady_state.reached,
            }

        return result


# Global state instance
design_state = DigesterDesignState()
