from fastapi import Request
from fastapi.responses import PlainTextResponse

from services.auth import AuthDecision
from services.request_log import AuthFailureEvent, ErrorEvent, RequestEvent


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def auth_and_log(request: Request, call_next):
    """
    Runs before every route: rejects unauthenticated requests, turns
    unexpected failures into a generic 500, and logs each request once.
    """
    state = request.app.state
    ip = client_ip(request)
    method, path = request.method, request.url.path

    gate = state.auth_gate
    if gate.authorize(request.headers.get("authorization")) is AuthDecision.DENIED:
        state.request_logger.log(AuthFailureEvent(ip=ip, method=method, path=path))
        return PlainTextResponse(
            "Authentication required",
            status_code=401,
            headers={"WWW-Authenticate": gate.challenge},
        )

    try:
        response = await call_next(request)
    except Exception as e:
        state.request_logger.log(
            ErrorEvent(ip=ip, message=repr(e), method=method, path=path, exc_info=e)
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    state.request_logger.log(
        RequestEvent(method=method, path=path, ip=ip, status=response.status_code)
    )
    return response
