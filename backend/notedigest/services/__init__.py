# Services package init
"""
NoteDigest Backend: Services Layer
==================================

What:  Business logic between the HTTP routes and the database.
How:   Services take a session plus domain inputs, enforce ownership and
       validation rules, and return schema objects. Routes receive them
       through FastAPI dependency injection.

Service Inventory:
    - Summarizer (abstract):   interface for text summarization providers
    - GeminiSummarizer:        Gemini generateContent over REST
    - ResilientCallExecutor:   bounded retries, timeout and error
                               classification for outbound HTTP calls
    - NoteService:             owner-scoped note CRUD and summarize
"""
