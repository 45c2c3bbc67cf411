"""
기본 도메인 예외 정의
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """도메인 기본 예외"""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self), "details": self.details}
