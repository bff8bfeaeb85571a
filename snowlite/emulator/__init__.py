"""snowlite emulator - an in-process Snowflake SQL API backed by DuckDB.

Modules:
    server: Application factory and CLI entry point
    handlers: HTTP request handlers
    engine: Snowflake-to-DuckDB translation and execution
    statement_manager: Statement storage and partitioning
    types: DuckDB to Snowflake type and value encoding
    middleware: Error handling and JWT validation
"""

try:
    from .server import EmulatorState, create_app, main
except ImportError as e:
    raise ImportError(
        "Optional dependencies for the emulator are not installed. "
        "Install them with: pip install 'snowlite[emulator]'"
    ) from e

__all__ = [
    "EmulatorState",
    "create_app",
    "main",
]
