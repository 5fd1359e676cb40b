"""
Jokes API — Routes Package
===========================

Route Inventory:
    - health.py:  GET  /                (plain-text greeting)
                  GET  /health          (service health check)
    - jokes.py:   GET  /jokes           (list with pagination, filters, sort)
                  GET  /jokes/{id}      (single joke)
                  POST /jokes           (create)

Routes stay thin: validation runs as a dependency, the JokeService does
the work, and failures go to the exception handlers in main.py.
"""
