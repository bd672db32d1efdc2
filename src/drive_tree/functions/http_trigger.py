"""HTTP trigger blueprint: health, move validation, moves and folder uploads."""

import base64
import binascii
import json
import logging
from typing import Any

import azure.functions as func

from drive_tree import __version__
from drive_tree.config import load_config
from drive_tree.errors import (
    CycleDetectedError,
    MoveRejected,
    PartialUploadFailure,
    StoreApiError,
    StoreAuthError,
)
from drive_tree.tree.mover import move_service_from_config
from drive_tree.tree.upload import UploadEntry, folder_uploader_from_config
from drive_tree.tree.validator import EntityKind, MoveCandidate

logger = logging.getLogger(__name__)

bp = func.Blueprint()


class BadRequest(ValueError):
    """Raised when a request body is malformed."""


def _json_response(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload), status_code=status_code, mimetype="application/json"
    )


def _error(message: str, status_code: int, **extra: Any) -> func.HttpResponse:
    return _json_response({"status": "error", "message": message, **extra}, status_code)


def _read_body(req: func.HttpRequest) -> dict[str, Any]:
    try:
        body = req.get_json()
    except ValueError as exc:
        raise BadRequest("request body must be JSON") from exc
    if not isinstance(body, dict):
        raise BadRequest("request body must be a JSON object")
    return body


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _parse_candidate(body: dict[str, Any]) -> MoveCandidate:
    try:
        kind = EntityKind(body.get("kind", EntityKind.FOLDER.value))
        subject_id = str(body["id"])
    except (KeyError, ValueError) as exc:
        raise BadRequest("'kind' must be 'folder' or 'file' and 'id' is required") from exc
    return MoveCandidate(
        kind=kind,
        id=subject_id,
        name=str(body.get("name", "")),
        parent_id=_optional_id(body.get("parent_id")),
    )


def _parse_entries(body: dict[str, Any]) -> list[UploadEntry]:
    raw_entries = body.get("entries")
    if not isinstance(raw_entries, list) or not raw_entries:
        raise BadRequest("'entries' must be a non-empty list")
    entries: list[UploadEntry] = []
    for raw in raw_entries:
        try:
            content = base64.b64decode(raw["content_b64"], validate=True)
            entries.append(UploadEntry(str(raw["path"]), content))
        except (KeyError, TypeError, binascii.Error, ValueError) as exc:
            raise BadRequest(f"invalid upload entry: {exc}") from exc
    return entries


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")
    return _json_response({"status": "ok", "version": __version__})


@bp.route(route="move/targets", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def move_targets(req: func.HttpRequest) -> func.HttpResponse:
    """Return the destinations a move candidate must not be moved into.

    ``complete`` is false when the store could only list the root level, in
    which case deeper descendants are missing from ``forbidden``.
    """
    logger.info("[move_targets] forbidden destinations requested")

    try:
        candidate = _parse_candidate(_read_body(req))
        service = move_service_from_config(load_config())
        if candidate.kind is EntityKind.FOLDER:
            snapshot = service.load_snapshot()
            forbidden = service.forbidden_for(candidate, snapshot)
            complete = snapshot.complete
        else:
            forbidden = service.forbidden_for(candidate)
            complete = True
        return _json_response(
            {
                "status": "ok",
                "forbidden": sorted(forbidden.ids),
                "current_parent_id": candidate.parent_id,
                "complete": complete,
            }
        )

    except BadRequest as exc:
        return _error(str(exc), 400)
    except (StoreApiError, StoreAuthError) as exc:
        logger.warning("[move_targets] store call failed; error:%s", exc)
        return _error(str(exc), 502)
    except Exception:
        logger.error("[move_targets] move target lookup failed", exc_info=True)
        return _error("Internal server error", 500)


@bp.route(route="move", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def move(req: func.HttpRequest) -> func.HttpResponse:
    """Validate and perform a folder or file move."""
    logger.info("[move] move requested")

    try:
        body = _read_body(req)
        candidate = _parse_candidate(body)
        destination_id = _optional_id(body.get("destination_id"))
        service = move_service_from_config(load_config())
        service.move(candidate, destination_id)
        return _json_response({"status": "ok"})

    except BadRequest as exc:
        return _error(str(exc), 400)
    except MoveRejected as exc:
        return _error(str(exc), 422, reason=exc.reason.value)
    except CycleDetectedError as exc:
        return _error(str(exc), 409, reason="cycle")
    except (StoreApiError, StoreAuthError) as exc:
        logger.warning("[move] store call failed; error:%s", exc)
        return _error(str(exc), 502)
    except Exception:
        logger.error("[move] move failed", exc_info=True)
        return _error("Internal server error", 500)


@bp.route(route="upload", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def upload_folder(req: func.HttpRequest) -> func.HttpResponse:
    """Recreate an uploaded directory on the store.

    Body: ``{"destination_id": ..., "entries": [{"path", "content_b64"}]}``.
    Responds 207 with the failed paths when only part of the batch succeeded.
    """
    logger.info("[upload_folder] folder upload requested")

    try:
        body = _read_body(req)
        entries = _parse_entries(body)
        destination_id = _optional_id(body.get("destination_id"))
        uploader = folder_uploader_from_config(load_config())
        result = uploader.upload(entries, destination_id)
        return _json_response(
            {
                "status": "ok",
                "uploaded": len(result.uploaded),
                "folders_created": result.folders_created,
            }
        )

    except BadRequest as exc:
        return _error(str(exc), 400)
    except PartialUploadFailure as exc:
        result = exc.result
        return _json_response(
            {
                "status": "partial",
                "uploaded": len(result.uploaded),
                "folders_created": result.folders_created,
                "first_failed_path": result.first_failed_path,
                "failures": [{"path": path, "error": str(err)} for path, err in result.failures],
            },
            status_code=207,
        )
    except Exception:
        logger.error("[upload_folder] folder upload failed", exc_info=True)
        return _error("Internal server error", 500)
