# Routes package init
"""
NoteDigest Backend: API Routes Package
======================================

Route Inventory:
    - notes.py:   GET    /api/notes                  (list caller's notes)
                  POST   /api/notes                  (create)
                  GET    /api/notes/{id}             (read one)
                  PUT    /api/notes/{id}             (replace title/content)
                  DELETE /api/notes/{id}             (delete)
                  POST   /api/notes/{id}/summarize   (summarize content)
    - health.py:  GET    /api/health                 (service health check)

Routes stay thin: resolve the caller, call a service, shape the response.
"""
