"""
Per-category guidance shown alongside a categorized draft
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from civiclens.core.constants import Category


@dataclass(frozen=True)
class IssueGuidance:
    """Precautions and impact notes for an issue category."""
    precautions: Tuple[str, ...]
    health_impact: str
    climate_impact: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "precautions": list(self.precautions),
            "health_impact": self.health_impact,
            "climate_impact": self.climate_impact,
        }


ISSUE_GUIDANCE: Dict[Category, IssueGuidance] = {
    Category.WASTE: IssueGuidance(
        precautions=(
            "Wear gloves and a mask before handling waste.",
            "Separate recyclables (plastic, paper, glass) from organic waste.",
            "Use a dustbin or bag to collect scattered trash.",
            "Contact your local waste collection service for pickup.",
            "Dispose of organic waste in a compost pit if available.",
        ),
        health_impact=(
            "Accumulated waste attracts pests (rats, flies) which spread diseases like "
            "Leptospirosis, Dengue, and Cholera. Decomposing waste releases toxic gases "
            "posing respiratory risks."
        ),
        climate_impact=(
            "Rotting organic waste releases Methane, a potent greenhouse gas. Plastics "
            "break down into microplastics, contaminating soil and water bodies."
        ),
    ),
    Category.WATER: IssueGuidance(
        precautions=(
            "Avoid direct contact with stagnant water.",
            "Clear any blockages in nearby drainage channels.",
            "Apply mosquito repellent around the area.",
            "Use bleaching powder to disinfect small stagnant pools.",
            "Report persistent water logging to your water utility.",
        ),
        health_impact=(
            "Stagnant water is a breeding ground for mosquitoes, leading to outbreaks of "
            "Malaria, Dengue, and Chikungunya. Contaminated water can cause skin "
            "infections and gastrointestinal diseases."
        ),
        climate_impact=(
            "Water stagnation damages infrastructure and soil structure. It also "
            "indicates poor drainage systems which are vulnerable to extreme weather."
        ),
    ),
    Category.ROAD: IssueGuidance(
        precautions=(
            "Place visible markers (cones, branches) around the hazard.",
            "Alert other pedestrians and motorists verbally.",
            "Take photos and share on community groups for awareness.",
            "For small potholes, fill temporarily with gravel if safe.",
            "Contact the local road maintenance department immediately.",
        ),
        health_impact=(
            "Damaged roads cause accidents leading to physical injuries. Dust from broken "
            "roads contributes to air pollution, aggravating asthma and other "
            "respiratory conditions."
        ),
        climate_impact=(
            "Poor road quality increases vehicle fuel consumption and emissions due to "
            "congestion and idling. It also adds to the urban heat island effect."
        ),
    ),
}


def guidance_for(category: Category) -> IssueGuidance:
    """Return the guidance for a category."""
    return ISSUE_GUIDANCE[Category(category)]
