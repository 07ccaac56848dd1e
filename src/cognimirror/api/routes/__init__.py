"""API route modules.

The route modules depend on ``cognimirror.api.app`` for their request
dependencies; importing it first keeps a direct import of a route module
from hitting a partially initialized module.
"""

import cognimirror.api.app  # noqa: F401
