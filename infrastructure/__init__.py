"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - payments: Payment gateway abstraction (Stripe, dummy)
    - events: Domain event bus (Redis pub/sub, in-memory)
    - container: Service locator wiring infrastructure into domain services
"""
