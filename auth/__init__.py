"""auth/ -- Authentication and access control for the dashboard.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. api/ wires auth/ components together
using core.config settings; auth/ never reads configuration itself.
"""
