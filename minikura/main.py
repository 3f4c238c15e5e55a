"""
Point d'entrée de l'opérateur Minikura
Démarre les boucles de réconciliation et expose une petite API de statut
"""
import logging
import time
import uuid
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .error_handlers import global_exception_handler
from .logging_config import reset_request_id, set_request_id, setup_logging
from .runtime import Operator
from .schemas import OperatorStatus

setup_logging()
logger = logging.getLogger("minikura.main")
access_logger = logging.getLogger("minikura.access")

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG_MODE,
)
app.state.operator = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Journalise chaque requête avec un identifiant de corrélation."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)
    start_time = time.perf_counter()
    client_host = getattr(request.client, "host", None)

    try:
        response = await call_next(request)
    except Exception as exc:
        access_logger.error(
            "request_failed",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(exc, "status_code", 500),
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 3),
                    "client_ip": client_host,
                    "error": str(exc),
                    "success": False,
                }
            },
        )
        reset_request_id(token)
        raise

    access_logger.info(
        "request_completed",
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 3),
                "client_ip": client_host,
                "user_agent": request.headers.get("user-agent"),
                "success": True,
            }
        },
    )

    response.headers["X-Request-ID"] = request_id
    reset_request_id(token)
    return response


app.add_exception_handler(Exception, global_exception_handler)


@app.on_event("startup")
async def start_operator():
    try:
        operator = Operator()
    except Exception as exc:
        # l'API de statut reste disponible pour le diagnostic
        logger.exception("operator_start_failed", extra={"extra_fields": {"error": str(exc)}})
        return
    operator.start()
    app.state.operator = operator


@app.on_event("shutdown")
async def stop_operator():
    operator: Optional[Operator] = app.state.operator
    if operator is not None:
        await operator.stop()
        app.state.operator = None


# ============= ENDPOINTS DE BASE =============

@app.get("/")
async def read_root():
    """Endpoint racine"""
    return {"message": "Minikura operator", "version": app.version}


@app.get("/api/v1/status", response_model=OperatorStatus)
async def get_status():
    """État des contrôleurs et du réflecteur"""
    operator: Optional[Operator] = app.state.operator
    if operator is None:
        return OperatorStatus(
            version=settings.API_VERSION,
            namespace=settings.NAMESPACE,
            crd_reflection=settings.ENABLE_CRD_REFLECTION,
        )
    return operator.status()


@app.get("/api/v1/health")
async def health_check(db: Session = Depends(get_db)):
    """Vérification de santé (connexion base)"""
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "operator": "running" if app.state.operator is not None else "stopped",
            "timestamp": datetime.now().isoformat(),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }


# ============= POINT D'ENTRÉE =============

def main():
    """Point d'entrée pour lancer l'opérateur"""
    uvicorn.run(
        "minikura.main:app",
        host="0.0.0.0",
        port=settings.API_PORT,
        reload=settings.DEBUG_MODE,
    )


if __name__ == "__main__":
    main()
