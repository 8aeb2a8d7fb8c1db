"""Entity-kind driven create/update/delete shared by the entity routers."""
from typing import Any, Dict

from fastapi import HTTPException
from tblib.entities import EntityKind, spec_for
from tblib.store import RecordNotFound

from .dependencies import get_db, get_snapshot_cache, _logger
from .routers.events import publish_change


def not_found(kind: EntityKind, record_id: int) -> HTTPException:
    label = spec_for(kind).label.lower()
    return HTTPException(status_code=404, detail=f"No se encontró {label} con ID {record_id}")


def _after_write(kind: EntityKind, action: str, record_id: int, **extra) -> None:
    get_snapshot_cache().invalidate()
    publish_change(kind.value, action, record_id, **extra)
    _logger.info("WRITE %s %s id=%s", action, kind.value, record_id)


def list_records(kind: EntityKind) -> Dict[str, Any]:
    return {"data": get_db().list_entities(kind)}


def get_record(kind: EntityKind, record_id: int) -> Dict[str, Any]:
    record = get_db().get_entity(kind, record_id)
    if record is None:
        raise not_found(kind, record_id)
    return {"data": record}


def create_record(kind: EntityKind, data: Dict[str, Any]) -> Dict[str, Any]:
    record = get_db().create_entity(kind, data)
    _after_write(kind, "create", record['id'])
    return {"ok": True, "data": record}


def update_record(kind: EntityKind, record_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        record = get_db().update_entity(kind, record_id, data)
    except RecordNotFound:
        raise not_found(kind, record_id)
    _after_write(kind, "update", record_id)
    return {"ok": True, "data": record}


def delete_record(kind: EntityKind, record_id: int) -> Dict[str, Any]:
    try:
        result = get_db().delete_entity(kind, record_id)
    except RecordNotFound:
        raise not_found(kind, record_id)
    _after_write(kind, "delete", record_id, cascaded=result['cascaded'])
    return {"ok": True, **result}
