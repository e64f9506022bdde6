"""Authentication and authorization.

Learn: One authentication path for everything, a bearer JWT issued by
the identity service and verified locally by each service:
1. Identity service → email/password → signed token
2. Project/task services → Authorization header → Subject

Ownership is then checked per record against Subject.id.
"""
