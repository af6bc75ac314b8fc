from fastapi import Request
import httpx

async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    FastAPI dependency provider for the shared httpx.AsyncClient.
    The client lives on `request.app.state.http_client`; it is created at
    startup and reused by the AI collaborator for every completion call.
    """
    return request.app.state.http_client
