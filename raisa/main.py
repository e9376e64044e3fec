import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from raisa.config import describe_settings, settings
from raisa.database.connection import Base, engine
from raisa.errors import RaisaError
from raisa.routes import analysts, distribution, vagas

# Configuração básica de logs
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    describe_settings(settings)
    Base.metadata.create_all(bind=engine)
    yield


# Inicializa app FastAPI
app = FastAPI(
    title="RAISA - Priorização e Distribuição de Vagas",
    version="1.0",
    description="API de priorização de vagas, recomendação de analistas e ajustes manuais",
    lifespan=lifespan,
)

# Middleware de CORS (necessário para o front e requisições externas)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # durante desenvolvimento; em produção, restrinja aos domínios do front
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RaisaError)
async def raisa_error_handler(request: Request, exc: RaisaError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail},
    )


# Registra as rotas
app.include_router(vagas.router)
app.include_router(analysts.router)
app.include_router(distribution.router)


# Healthcheck
@app.get("/")
def healthcheck():
    return {"status": "ok", "message": "API rodando!"}
