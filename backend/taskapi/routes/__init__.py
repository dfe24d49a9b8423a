"""
Task API — Routes Package
==========================

Route Inventory:
    - auth.py:    POST /auth/register, POST /auth/login, GET /auth/profile
    - tasks.py:   POST/GET /api/tasks, GET/PUT/DELETE /api/tasks/{task_id}
    - health.py:  GET /health

Routes are thin: extract input, call a service, choose the status code.
"""
