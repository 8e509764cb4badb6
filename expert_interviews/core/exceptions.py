from typing import Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base API exception with status code and detail"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str = "error",
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code


class BadRequestException(BaseAPIException):
    """Exception for requests that fail validation"""

    def __init__(self, detail: str = "Bad request", code: str = "bad_request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=code,
        )


class CSVValidationError(BadRequestException):
    """Exception for malformed question CSV uploads"""

    def __init__(self, detail: str = "Invalid CSV file"):
        super().__init__(detail=detail, code="invalid_csv")


class NotFoundException(BaseAPIException):
    """Exception for resource not found"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            code="not_found",
        )


class ResourceNotFoundError(NotFoundException):
    """Not found error naming the resource type and identifier"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(detail=f"{resource} not found")
        self.resource = resource
        self.identifier = identifier


class DatabaseError(BaseAPIException):
    """Exception for failed database operations"""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code="database_error",
        )


class ExternalServiceError(BaseAPIException):
    """Exception for failures of external services (OpenAI, analysis server)"""

    def __init__(self, service: str, detail: str = "External service error"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{service}: {detail}",
            code="external_service_error",
        )
        self.service = service
