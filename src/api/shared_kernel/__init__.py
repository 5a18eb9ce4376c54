"""Components used by more than one package of the Identity API.

Only context-free building blocks live here: the federated JWT validator
and the structlog context helpers. Nothing in this package may import
from ``identity``.
"""
