"""Generic CRUD endpoints shared by every resource router.

``register_crud_routes`` attaches the five standard endpoints of a resource
to a router. Each resource is described once by a ``Resource``; the
endpoints talk to its service only through the ``CRUDService`` interface
(``find``, ``find_by_id``, ``insert``, ``update_by_id``, ``delete_by_id``).

Collection routes are registered at the router prefix itself (no trailing
slash). Routes with fixed paths (reports, aliases) must be added to the router
before calling ``register_crud_routes`` so that ``/{id}`` does not shadow
them.
"""

import logging
from collections.abc import Collection
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_db
from ..core.exceptions import NotFoundError
from ..core.query_features import parse_query_params
from ..schemas.common import ResponseModel
from ..services.base import CRUDService

logger = logging.getLogger(__name__)

CRUD_OPERATIONS = ("get_all", "get_one", "create", "update", "delete")


@dataclass(frozen=True)
class Resource:
    """Everything the factory needs to know about one entity type."""

    service_class: type[CRUDService]
    entity: str
    collection: str
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    read_schema: type[ResponseModel]
    detail_schema: Optional[type[ResponseModel]] = None
    # Single-document reads load the service's populate relation
    populate: bool = False

    @property
    def output_schema(self) -> type[ResponseModel]:
        return self.detail_schema or self.read_schema


def output_fields(schema: type[BaseModel]) -> set[str]:
    """Serialized keys of a response schema, as accepted by ``fields``."""
    return {field.serialization_alias or name for name, field in schema.model_fields.items()}


def envelope(key: str, value: Any, results: Optional[int] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"status": "success"}
    if results is not None:
        body["results"] = results
    body["data"] = {key: value}
    return body


async def list_documents(
    resource: Resource,
    params: dict[str, Any],
    db: AsyncSession,
    **scope: Any,
) -> JSONResponse:
    """
    Run the query-feature pipeline for a resource and wrap the result.

    Args:
        resource: Resource description
        params: Parsed query parameters
        db: Database session
        scope: Column equality constraints, e.g. ``tour_id`` on nested routes
    """
    service = resource.service_class(db)
    features = (
        service.query_features(params, fields=output_fields(resource.read_schema), **scope)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
    )
    documents = await service.find(features)

    payload = [features.project(resource.read_schema.model_validate(doc).to_json()) for doc in documents]
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=envelope(resource.collection, payload, results=len(payload)),
    )


async def create_document(resource: Resource, payload: BaseModel, db: AsyncSession) -> JSONResponse:
    """Insert a document and return it with 201."""
    document = await resource.service_class(db).insert(payload)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=envelope(resource.entity, resource.read_schema.model_validate(document).to_json()),
    )


def register_crud_routes(
    router: APIRouter,
    resource: Resource,
    operations: Collection[str] = CRUD_OPERATIONS,
) -> None:
    """
    Attach getAll, getOne, createOne, updateOne and deleteOne to a router.

    Args:
        router: Router the endpoints are added to
        resource: Resource description
        operations: Subset of ``CRUD_OPERATIONS`` to register
    """
    unknown = set(operations) - set(CRUD_OPERATIONS)
    if unknown:
        raise ValueError(f"Unknown CRUD operations: {sorted(unknown)}")

    entity = resource.entity
    service_class = resource.service_class

    if "get_all" in operations:
        async def get_all(request: Request, db: AsyncSession = Depends(get_db)) -> JSONResponse:
            params = parse_query_params(request.query_params.multi_items())
            return await list_documents(resource, params, db)

        router.add_api_route(
            "", get_all, methods=["GET"], summary=f"List {resource.collection}",
            name=f"get_all_{resource.collection}",
        )

    if "create" in operations:
        async def create_one(
            payload: resource.create_schema,
            db: AsyncSession = Depends(get_db),
        ) -> JSONResponse:
            return await create_document(resource, payload, db)

        router.add_api_route(
            "", create_one, methods=["POST"], status_code=status.HTTP_201_CREATED,
            summary=f"Create a {entity}", name=f"create_{entity}",
        )

    if "get_one" in operations:
        async def get_one(id: UUID, db: AsyncSession = Depends(get_db)) -> JSONResponse:
            document = await service_class(db).find_by_id(id, populate=resource.populate)
            if document is None:
                raise NotFoundError()
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content=envelope(entity, resource.output_schema.model_validate(document).to_json()),
            )

        router.add_api_route(
            "/{id}", get_one, methods=["GET"], summary=f"Get a {entity}", name=f"get_{entity}",
        )

    if "update" in operations:
        async def update_one(
            id: UUID,
            payload: resource.update_schema,
            db: AsyncSession = Depends(get_db),
        ) -> JSONResponse:
            document = await service_class(db).update_by_id(id, payload)
            if document is None:
                raise NotFoundError()
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content=envelope(entity, resource.read_schema.model_validate(document).to_json()),
            )

        router.add_api_route(
            "/{id}", update_one, methods=["PATCH"], summary=f"Update a {entity}",
            name=f"update_{entity}",
        )

    if "delete" in operations:
        async def delete_one(id: UUID, db: AsyncSession = Depends(get_db)) -> Response:
            if not await service_class(db).delete_by_id(id):
                raise NotFoundError()
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        router.add_api_route(
            "/{id}", delete_one, methods=["DELETE"], status_code=status.HTTP_204_NO_CONTENT,
            summary=f"Delete a {entity}", name=f"delete_{entity}",
        )

    logger.debug(
        "CRUD routes registered",
        extra={"resource": resource.collection, "operations": sorted(operations)}
    )
