"""ProjectFlow — identity, project and task services.

Three small FastAPI apps that trust one another only through signed
bearer tokens. The project service enriches its responses with task
statistics fetched from the task service at request time, and falls
back to zeros when that call fails.
"""

__version__ = "0.1.0"
