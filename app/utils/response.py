# app/utils/response.py

from typing import TypeVar, Generic, Optional, Dict, Any, List
from pydantic import BaseModel

T = TypeVar("T")


def success_response(
    message: str,
    data: Optional[T] = None,
    warnings: Optional[List[str]] = None,
) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "warnings": warnings or [],
    }


class APIResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
    # best-effort collaborator failures (rate lookup, notifications)
    warnings: List[str] = []
