"""Routing: the route structure, ancestor resolution and path building.

URL matching itself happens upstream; this package starts from the
parameters and properties the outer router produced.
"""

from perch.routing.ancestors import AncestorChain, AncestorResolver
from perch.routing.paths import PathBuilder, render_url_template
from perch.routing.route import Route

__all__ = [
    "AncestorChain",
    "AncestorResolver",
    "PathBuilder",
    "Route",
    "render_url_template",
]
