"""
FastAPI routers, one module per domain.

Every protected endpoint follows the same flow: auth dependency, request
validation, service call with the caller's identity, mapping to the response
model. Policy denials surface as 404 (row not visible) or 400
policy_violation (row fails a write check), never as 403.
"""
