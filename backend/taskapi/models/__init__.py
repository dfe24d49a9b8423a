"""
Task API — ORM Models Package
==============================

What:  SQLAlchemy models for the Credential Store tables.

Model Inventory:
    - user.py:  User  (users table: identity and password hash)
    - task.py:  Task  (tasks table: owner-scoped task records)
"""
