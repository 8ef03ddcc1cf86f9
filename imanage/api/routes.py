from __future__ import annotations

from functools import partial
from typing import Any

from fastapi import APIRouter, Body, Response

from imanage.api.schemas import ErrorResponse, validate_record
from imanage.service.errors import ValidationError
from imanage.service.runtime import get_runtime
from imanage.storage.schema import EntityType

router = APIRouter(prefix="/api")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

_MONTH_LENGTH = len("YYYY-MM")


def _register_collection(entity: EntityType) -> None:
    """Mount list/get/create/update/delete for one entity under ``/api/<path>``."""
    collection = f"/{entity.path}"
    item = f"/{entity.path}/{{entity_id}}"
    tags = [entity.path]

    def list_records():
        return get_runtime().records.list(entity)

    def get_record(entity_id: str):
        return get_runtime().records.get(entity, entity_id)

    def create_record(body: Any = Body(...)):
        payload = validate_record(entity, body)
        return get_runtime().records.create(entity, payload)

    def update_record(entity_id: str, body: Any = Body(...)):
        if not isinstance(body, dict):
            raise ValidationError("request body must be a JSON object")
        return get_runtime().records.update(
            entity, entity_id, body, validate=partial(validate_record, entity)
        )

    def delete_record(entity_id: str):
        get_runtime().records.delete(entity, entity_id)
        return Response(status_code=204)

    router.add_api_route(
        collection, list_records, methods=["GET"], name=f"list_{entity.value}", tags=tags
    )
    router.add_api_route(
        item,
        get_record,
        methods=["GET"],
        name=f"get_{entity.value}",
        tags=tags,
        responses=_ERROR_RESPONSES,
    )
    router.add_api_route(
        collection,
        create_record,
        methods=["POST"],
        status_code=201,
        name=f"create_{entity.value}",
        tags=tags,
        responses=_ERROR_RESPONSES,
    )
    router.add_api_route(
        item,
        update_record,
        methods=["PUT"],
        name=f"update_{entity.value}",
        tags=tags,
        responses=_ERROR_RESPONSES,
    )
    router.add_api_route(
        item,
        delete_record,
        methods=["DELETE"],
        status_code=204,
        response_class=Response,
        name=f"delete_{entity.value}",
        tags=tags,
        responses=_ERROR_RESPONSES,
    )


@router.get("/payslips/month/{month}", tags=["payslips"], responses=_ERROR_RESPONSES)
def list_payslips_for_month(month: str):
    if len(month) != _MONTH_LENGTH or not (month[:4].isdigit() and month[4] == "-" and month[5:].isdigit()):
        raise ValidationError("Invalid month format. Expected YYYY-MM")
    return get_runtime().records.list_by(EntityType.PAYSLIP, "month", month)


for _entity in EntityType:
    _register_collection(_entity)
