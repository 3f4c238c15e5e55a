"""
Gestionnaire d'erreurs global pour l'API de statut
Toujours une réponse JSON, le détail part dans les logs
"""
import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("minikura.error")


async def global_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "unhandled_exception",
        extra={
            "extra_fields": {
                "path": request.url.path,
                "method": request.method,
                "request_id": request_id,
            }
        },
    )

    if isinstance(exc, SQLAlchemyError):
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "database_error",
                "message": "Erreur de base de données.",
                "details": None,
            },
        )

    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "http_error",
                "message": exc.detail,
                "details": None,
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "Erreur interne du serveur",
            "details": "Consultez les logs pour plus de détails",
        },
    )
