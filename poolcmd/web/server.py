import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from poolcmd.local.instance import AlreadyRunning, Instance, InstanceError
from poolcmd.local.pool import InstancePool

log = logging.getLogger("front_door")


def _error_response(error: InstanceError) -> JSONResponse:
    status_code = 409 if isinstance(error, AlreadyRunning) else 500
    return JSONResponse({"error": error.kind, "detail": str(error)}, status_code=status_code)


def _status_body(pool_id: int, instance: Instance) -> dict:
    body = instance.status()
    body["poolId"] = pool_id
    return body


def create_app(pool: InstancePool) -> Starlette:
    """
    Builds the front-door ASGI application for `pool`.

    Instance operations block until the process is ready or stopped, so they
    run in the event loop's default executor.
    """

    async def run_operation(request: Request, operation: Callable[[int], Instance]) -> Response:
        pool_id = request.path_params["pool_id"]
        log.info(f"Received {request.url.path} from {request.client.host if request.client else 'unknown'}")
        try:
            instance = await asyncio.get_running_loop().run_in_executor(None, operation, pool_id)
        except InstanceError as e:
            log.error(f"{request.url.path} failed: {e}")
            return _error_response(e)
        return JSONResponse(_status_body(pool_id, instance))

    async def healthcheck(request: Request) -> Response:
        return PlainTextResponse("ok")

    async def status(request: Request) -> Response:
        pool_id = request.path_params["pool_id"]
        return JSONResponse(_status_body(pool_id, pool.get(pool_id)))

    async def start(request: Request) -> Response:
        return await run_operation(request, pool.start)

    async def stop(request: Request) -> Response:
        return await run_operation(request, pool.stop)

    async def restart(request: Request) -> Response:
        return await run_operation(request, pool.restart)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        log.info("Front door ready.")
        yield
        await asyncio.get_running_loop().run_in_executor(None, pool.stop_all)
        log.info("Front door stopped.")

    routes = [
        Route("/healthcheck", endpoint=healthcheck, methods=["GET"]),
        Route("/{pool_id:int}", endpoint=status, methods=["GET"]),
        Route("/{pool_id:int}/start", endpoint=start, methods=["GET", "POST"]),
        Route("/{pool_id:int}/stop", endpoint=stop, methods=["GET", "POST"]),
        Route("/{pool_id:int}/restart", endpoint=restart, methods=["GET", "POST"]),
    ]
    return Starlette(debug=False, routes=routes, lifespan=lifespan)
