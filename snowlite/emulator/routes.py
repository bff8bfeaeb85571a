"""Route definitions for the emulated SQL REST API."""

from starlette.routing import Route

from . import handlers


def get_sql_api_routes() -> list[Route]:
    """Get all SQL API routes.

    Returns:
        List of Starlette Route objects for the SQL REST API
    """
    return [
        Route("/api/v2/statements", handlers.submit_statement, methods=["POST"]),
        Route(
            "/api/v2/statements/{statementHandle}",
            handlers.get_statement_status,
            methods=["GET"],
        ),
    ]
