import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bridge import __version__, env
from bridge.errors import BridgeError
from bridge.models import PrintJobIn, PrintRawIn, PrinterConfig, PrinterRequest
from bridge.printers import get_dispatcher
from bridge.security import verify_agent_token
from bridge.service import PrintService

logger = logging.getLogger("print_bridge.api")

app = FastAPI(title="POS Print Bridge", version=__version__)

# the POS page is served from another origin than the loopback bridge
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Agent-Token"],
)

_service = None


def get_service() -> PrintService:
    global _service
    if _service is None:
        _service = PrintService(get_dispatcher())
    return _service


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(BridgeError)
async def _bridge_error(request: Request, exc: BridgeError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _fail(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "Invalid request"))
    return _fail(400, message)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _fail(404, "Not found")
    return _fail(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _fail(500, str(exc) or exc.__class__.__name__)


@app.on_event("startup")
def _startup():
    service = get_service()
    logger.info("Print bridge %s listening on %s:%s", __version__, env.BRIDGE_HOST, env.BRIDGE_PORT)
    printers = service.list_printers()
    if not printers:
        logger.info("No printers found. Make sure your printer is connected.")
    for p in printers:
        logger.info("  - %s%s", p.name, " (default)" if p.is_default else "")


@app.get("/health")
@app.get("/status")
def status(service: PrintService = Depends(get_service)):
    return service.status()


@app.get("/printers", dependencies=[Depends(verify_agent_token)])
def printers(service: PrintService = Depends(get_service)):
    return {"printers": [p.to_wire() for p in service.list_printers()]}


@app.get("/config", dependencies=[Depends(verify_agent_token)])
def get_config(service: PrintService = Depends(get_service)):
    return {"success": True, "config": service.config.to_wire()}


@app.post("/config", dependencies=[Depends(verify_agent_token)])
def set_config(payload: PrinterConfig, service: PrintService = Depends(get_service)):
    config = service.update_config(payload)
    return {"success": True, "config": config.to_wire()}


@app.post("/print", dependencies=[Depends(verify_agent_token)])
def print_job(payload: PrintJobIn, service: PrintService = Depends(get_service)):
    service.print_job(payload)
    return {"success": True}


@app.post("/print-raw", dependencies=[Depends(verify_agent_token)])
def print_raw(payload: PrintRawIn, service: PrintService = Depends(get_service)):
    service.print_raw(payload.printer, payload.data)
    return {"success": True}


@app.post("/cash-drawer", dependencies=[Depends(verify_agent_token)])
def cash_drawer(payload: PrinterRequest, service: PrintService = Depends(get_service)):
    service.open_drawer(payload.printer)
    return {"success": True}


@app.post("/test-print", dependencies=[Depends(verify_agent_token)])
def test_print(payload: PrinterRequest, service: PrintService = Depends(get_service)):
    service.test_print(payload.printer)
    return {"success": True}
