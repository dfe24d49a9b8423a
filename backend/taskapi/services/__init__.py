"""
Task API — Services Layer
==========================

Service Inventory:
    - TokenService:     issue/verify signed access tokens (token_service.py)
    - PasswordHasher:   salted password hashing (password_service.py)
    - ownership:        the task ownership policy (ownership.py)
    - AccountService:   register, login, profile (account_service.py)
    - TaskService:      owner-scoped task CRUD (task_service.py)

Services never touch HTTP objects; they take a session, an Identity where
relevant, and plain input, and either return a schema or raise a TaskApiError.
"""
