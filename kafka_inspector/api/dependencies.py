"""Global reusable FastAPI dependencies."""
from fastapi import Request

from kafka_inspector.services.inspector import Inspector


def get_inspector(request: Request) -> Inspector:
    """The process-wide Inspector built in the application lifespan."""
    return request.app.state.inspector
