"""
api/routes/v1/things.py -- Thing routes for the ThingGate REST API.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /things                -- list all things
  POST   /things                -- create a thing
  GET    /things/count          -- number of things
  GET    /things/{thing_id}     -- fetch one thing
  PUT    /things/{thing_id}     -- full-record update
  DELETE /things/{thing_id}     -- delete

Every handler is a pass-through: it installs the caller with
authenticated(principal) and calls ThingRepository, whose guard makes the
allow/deny decision. AccessDenied propagates to the exception handler in
api/main.py (403). A 404 is only ever produced after the guard has passed.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response

from api.models import CountResponse, ErrorDetail, ThingResponse, ThingWrite
from auth.context import authenticated
from auth.dependencies import get_current_principal
from auth.models import Principal
from core.repository import EntityNotFound
from things.models import Thing
from things.store import ThingRepository

# Authentication is required for every route on this router; authorization is
# left to the repository.
router = APIRouter(dependencies=[Depends(get_current_principal)])

ThingId = Annotated[int, Path(ge=0, description="Store-assigned Thing id.")]


def _not_found(thing_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=f"Thing {thing_id} not found.").model_dump(),
    )


@router.get("/things", response_model=list[ThingResponse])
def list_things(request: Request, principal: Principal = Depends(get_current_principal)) -> list[ThingResponse]:
    """Return all things ordered by id."""
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        things = repo.find_all()
    return [ThingResponse.from_thing(t) for t in things]


@router.post("/things", response_model=ThingResponse, status_code=201)
def create_thing(
    request: Request,
    body: ThingWrite,
    principal: Principal = Depends(get_current_principal),
) -> ThingResponse:
    """Create a thing. The id is assigned by the store."""
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        thing = repo.save(Thing(name=body.name))
    return ThingResponse.from_thing(thing)


@router.get("/things/count", response_model=CountResponse)
def count_things(request: Request, principal: Principal = Depends(get_current_principal)) -> CountResponse:
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        return CountResponse(count=repo.count())


@router.get("/things/{thing_id}", response_model=ThingResponse)
def get_thing(
    request: Request,
    thing_id: ThingId,
    principal: Principal = Depends(get_current_principal),
) -> ThingResponse:
    """Fetch one thing. 403 if the caller lacks the required role, 404 if absent."""
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        thing = repo.find_by_id(thing_id)
    if thing is None:
        raise _not_found(thing_id)
    return ThingResponse.from_thing(thing)


@router.put("/things/{thing_id}", response_model=ThingResponse)
def update_thing(
    request: Request,
    thing_id: ThingId,
    body: ThingWrite,
    principal: Principal = Depends(get_current_principal),
) -> ThingResponse:
    """Replace the thing's fields. Does not create: 404 if the id is unknown."""
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        if not repo.exists_by_id(thing_id):
            raise _not_found(thing_id)
        thing = repo.save(Thing(id=thing_id, name=body.name))
    return ThingResponse.from_thing(thing)


@router.delete("/things/{thing_id}", status_code=204)
def delete_thing(
    request: Request,
    thing_id: ThingId,
    principal: Principal = Depends(get_current_principal),
) -> Response:
    repo: ThingRepository = request.app.state.things
    with authenticated(principal):
        try:
            repo.delete_by_id(thing_id)
        except EntityNotFound:
            raise _not_found(thing_id) from None
    return Response(status_code=204)
