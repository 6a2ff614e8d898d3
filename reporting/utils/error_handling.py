"""
Error Handling Module for the Reporting Engine

This module provides centralized error handling with:
- Custom exception hierarchy for import, export and report generation
- Standardized error responses
- Error logging

Cancellation is never wrapped: a superseded operation surfaces as
``asyncio.CancelledError`` and is absorbed silently by its owner.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("reporting.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the engine"""
    
    # Input Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    EMPTY_INPUT = "EMPTY_INPUT"
    STRUCTURE_ERROR = "STRUCTURE_ERROR"
    NOT_FOUND = "NOT_FOUND"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    
    # Upstream Errors (502)
    UPLOAD_FAILED = "UPLOAD_FAILED"
    REPORT_GENERATION_FAILED = "REPORT_GENERATION_FAILED"
    TARGET_PERSIST_FAILED = "TARGET_PERSIST_FAILED"
    
    # Internal Errors (500)
    EXPORT_FAILED = "EXPORT_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all engine exceptions"""
    
    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() + "Z",
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Input Exceptions
# ============================================================================

class EmptyInputError(AppException):
    """CSV has no usable lines"""
    
    def __init__(self, message: str = "CSV file is empty."):
        super().__init__(
            code=ErrorCode.EMPTY_INPUT,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


EmptyFileError = EmptyInputError


class StructureError(AppException):
    """First-line shape violation of an imported file"""
    
    def __init__(self, field: str, column: int, reason: str):
        super().__init__(
            code=ErrorCode.STRUCTURE_ERROR,
            message=f"Structure error: {field} (Column {column}) {reason}.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            field=field,
            details={"column": column},
        )


class SchemaError(AppException):
    """Invalid report configuration"""
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code=ErrorCode.SCHEMA_ERROR,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            field=field,
        )


class ReportNotFoundException(AppException):
    """Unknown report id"""
    
    def __init__(self, report_id: str):
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"Report '{report_id}' not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"report_id": report_id},
        )


# ============================================================================
# Upstream Exceptions
# ============================================================================

class UploadFailure(AppException):
    """Network or server rejection while uploading an import batch"""
    
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.UPLOAD_FAILED,
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            original_error=original_error,
        )


class ReportGenerationError(AppException):
    """Network or server rejection while fetching report rows"""
    
    def __init__(self, report_id: str, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.REPORT_GENERATION_FAILED,
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"report_id": report_id},
            original_error=original_error,
        )


class TargetPersistFailure(AppException):
    """Edited thresholds could not be saved"""
    
    def __init__(self, message: str = "An error occurred while updating targets.", original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.TARGET_PERSIST_FAILED,
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            original_error=original_error,
        )


# ============================================================================
# Export Exceptions
# ============================================================================

class ExportFailure(AppException):
    """Workbook construction or table serialization failed"""
    
    def __init__(
        self,
        message: str = "Failed to export this report to Excel. Please try again.",
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            code=ErrorCode.EXPORT_FAILED,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details
    
    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    logger.error(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )
    
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        404: ErrorCode.NOT_FOUND,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
    }
    
    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    
    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )
    
    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    
    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )
    
    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )
    
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
