"""
Dependency Injection for the Runtime API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..services.invocation import InvocationPipeline


def get_invocation_pipeline(request: Request) -> InvocationPipeline:
    return request.app.state.invocation_pipeline


InvocationPipelineDep = Annotated[InvocationPipeline, Depends(get_invocation_pipeline)]
