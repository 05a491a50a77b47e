"""
Plumbing shared by the JSON views: error envelope, body parsing, pagination.

Services raise Django's own exceptions (plus ``Conflict``/``NotFound``/
``Unauthorized`` from ``accounts.exceptions``); ``api_view`` turns them into
responses so views only deal with the happy path.
"""
from __future__ import annotations

import functools
import json
import logging
from datetime import date
from typing import Callable, Iterable, Optional

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from accounts.exceptions import Conflict, Unauthorized

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """The request body or query string could not be understood."""


def error_response(status: int, code: str, message: str, details=None) -> JsonResponse:
    body = {"code": code, "message": message, "timestamp": timezone.now().isoformat()}
    if details:
        body["details"] = details
    return JsonResponse({"error": body}, status=status)


def _validation_details(exc: ValidationError):
    if hasattr(exc, "error_dict"):
        return {name: [str(message) for message in messages] for name, messages in exc.message_dict.items()}
    return None


def _validation_message(exc: ValidationError) -> str:
    if hasattr(exc, "error_dict"):
        return "; ".join(
            f"{name}: {' '.join(messages)}" for name, messages in exc.message_dict.items()
        )
    return " ".join(exc.messages)


def api_view(methods: Iterable[str], *, public: bool = False):
    """
    Wrap a function view: method check, authentication, exception mapping.

    The wrapped view receives the parsed JSON body as ``request.data`` for
    write methods.
    """
    allowed = {method.upper() for method in methods}

    def decorator(view: Callable):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            if request.method not in allowed:
                response = error_response(405, "METHOD_NOT_ALLOWED", f"Method {request.method} not allowed.")
                response["Allow"] = ", ".join(sorted(allowed))
                return response
            try:
                if not public and not request.user.is_authenticated:
                    raise Unauthorized("Authentication required.")
                request.data = parse_body(request)
                return view(request, *args, **kwargs)
            except Unauthorized as exc:
                return error_response(401, "UNAUTHORIZED", str(exc) or "Authentication required.")
            except PermissionDenied as exc:
                return error_response(403, "FORBIDDEN", str(exc) or "Forbidden.")
            except ObjectDoesNotExist as exc:
                return error_response(404, "NOT_FOUND", str(exc) or "Not found.")
            except ValidationError as exc:
                return error_response(422, "VALIDATION_ERROR", _validation_message(exc), _validation_details(exc))
            except Conflict as exc:
                return error_response(409, "CONFLICT", str(exc))
            except BadRequest as exc:
                return error_response(400, "BAD_REQUEST", str(exc))
            except Exception:
                logger.exception("Unhandled error on %s %s", request.method, request.path)
                return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred.")

        return wrapper

    return decorator


def parse_body(request) -> dict:
    if request.method in ("GET", "HEAD", "DELETE", "OPTIONS") or not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (UnicodeDecodeError, ValueError):
        raise BadRequest("Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object.")
    return data


def required(data: dict, name: str):
    value = data.get(name)
    if value is None or value == "":
        raise ValidationError({name: "This field is required."})
    return value


def date_param(value, name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    parsed = parse_date(str(value)) if not isinstance(value, date) else value
    if parsed is None:
        raise ValidationError({name: "Enter a valid date (YYYY-MM-DD)."})
    return parsed


def int_param(value, name: str, default: Optional[int] = None) -> Optional[int]:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: "Enter a whole number."})


def paginate(request, items, serialize: Callable) -> JsonResponse:
    default_size = getattr(settings, "API_PAGE_SIZE", 20)
    max_size = getattr(settings, "API_MAX_PAGE_SIZE", 100)
    limit = int_param(request.GET.get("limit"), "limit", default_size)
    page_number = int_param(request.GET.get("page"), "page", 1)
    if limit < 1 or page_number < 1:
        raise ValidationError({"page": "Page and limit must be positive."})
    limit = min(limit, max_size)

    paginator = Paginator(items, limit)
    # Past the last page returns an empty data list rather than an error.
    if page_number > paginator.num_pages:
        rows = []
    else:
        rows = [serialize(item) for item in paginator.page(page_number).object_list]
    total_pages = paginator.num_pages if paginator.count else 0
    return JsonResponse(
        {
            "data": rows,
            "meta": {
                "page": page_number,
                "limit": limit,
                "total": paginator.count,
                "totalPages": total_pages,
                "hasNext": page_number < total_pages,
                "hasPrev": page_number > 1,
            },
        }
    )
