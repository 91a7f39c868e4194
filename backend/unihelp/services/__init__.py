# Services package init
"""
UniHelp Backend — Services Layer
==================================

What:  Business rules between the routes (HTTP) and the database.

Service Inventory:
    - AuthService:             registration and login
    - NoteService:             note CRUD with ownership checks
    - QuestionService:         ask, list and fetch questions
    - AnswerService:           persist an answer, then notify the question owner
    - NotificationBroadcaster: per-user groups of live hub connections
    - FileService:             attachment validation, storage and lookup

Services take their AsyncSession (and broadcaster, where needed) per call,
so they hold no request state and can be tested without HTTP.
"""
