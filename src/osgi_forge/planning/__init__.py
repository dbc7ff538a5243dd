"""Build-plan construction and classpath propagation."""

from osgi_forge.planning.build_plan import (
    BuildPlan,
    PlacementTable,
    construct_build_plan,
    contribute_to_plan,
)
from osgi_forge.planning.classpath import (
    ClasspathPropagator,
    post_build,
)

__all__ = [
    "BuildPlan",
    "ClasspathPropagator",
    "PlacementTable",
    "construct_build_plan",
    "contribute_to_plan",
    "post_build",
]
