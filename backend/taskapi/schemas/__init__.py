"""
Task API — Pydantic Schemas Package
====================================

What:  API contracts (request bodies and response shapes), kept separate from
       the ORM models so internal columns such as password_hash can never leak.

Schema Inventory:
    - common.py:  CamelModel base, ErrorResponse, HealthResponse
    - auth.py:    register/login/profile contracts and the Identity value
    - task.py:    task create/update bodies and TaskResponse
"""
