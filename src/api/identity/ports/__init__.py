"""Ports (interfaces) for the Identity bounded context.

Ports define the contracts for repositories and external collaborators
without specifying implementation details, so the domain and application
layers stay independent of infrastructure.
"""
