from fastapi import Request

from smartnotes.services.llm import ModelInvoker


def get_invoker(request: Request) -> ModelInvoker:
    """The app-wide invoker, created at startup; tests override this dependency."""
    return request.app.state.invoker
