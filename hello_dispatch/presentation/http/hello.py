"""Greeting endpoint - the downstream responder."""

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/hello", response_class=PlainTextResponse)
async def say_hello(name: str = Query(...)) -> str:
    return f"Hi, {name}"
