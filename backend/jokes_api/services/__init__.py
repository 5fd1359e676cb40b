"""
Jokes API — Services Layer
===========================

What:  Handler logic sitting between routes (HTTP) and the storage collaborator.
How:   Services take validated request models, call the store, and return
       response models. Each app instance builds one JokeService in
       create_app() and routes reach it through app.state.

Service Inventory:
    - JokeService: list (paginated, filtered, sorted), get by id, create
"""
