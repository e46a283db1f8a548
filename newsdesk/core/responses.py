from typing import Any


def success_response(data: Any, meta: dict | None = None) -> dict:
    return {
        "success": True,
        "data": data,
        "error": None,
        "meta": meta or {},
    }


def batch_response(message: str, result: dict, include_skipped: bool = False) -> dict:
    body = {
        "message": message,
        "successfulPosts": result["succeeded"],
        "failedIds": result["failed"],
    }
    if include_skipped:
        body["skippedCachedIds"] = result["skipped"]
    return body


def error_response(code: str, message: str, trace_id: str, status: int = 400, details: dict | None = None) -> tuple[dict, int]:
    return (
        {
            "success": False,
            "data": None,
            "error": {
                "code": code,
                "message": message,
                "trace_id": trace_id,
                "details": details or {},
            },
            "meta": {},
        },
        status,
    )
