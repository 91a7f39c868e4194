# Routes package init
"""
UniHelp Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:       POST /api/v1/auth/register, /login; GET /test-auth
    - notes.py:      /api/v1/notes CRUD + POST /api/v1/notes/attachments
    - questions.py:  GET/POST /api/v1/questions, GET /api/v1/questions/{id}
    - answers.py:    POST /api/v1/questions/{id}/answers (+ /test-notification)
    - files.py:      GET /api/v1/files/{path}
    - health.py:     GET /health
    - hub.py:        WS  /notificationHub

Routes stay thin: parse the request, call a service, set status and headers.
"""
