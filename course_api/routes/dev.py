from fastapi import APIRouter, Request

from course_api.schemas import DevIdentityResponse

# Answers on every method and sub-path under the prefix.
OTHER_METHODS = ["POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

router = APIRouter(tags=["dev"])


def _identity(request: Request) -> DevIdentityResponse:
    return DevIdentityResponse(created_by=request.app.state.config.DEV_CREATED_BY)


@router.get("", summary="Service ownership check", response_model=DevIdentityResponse)
async def dev_identity(request: Request) -> DevIdentityResponse:
    return _identity(request)


@router.api_route("", methods=OTHER_METHODS, include_in_schema=False)
async def dev_identity_any_method(request: Request) -> DevIdentityResponse:
    return _identity(request)


@router.api_route("/{rest:path}", methods=["GET", *OTHER_METHODS], include_in_schema=False)
async def dev_identity_subpath(request: Request, rest: str) -> DevIdentityResponse:
    return _identity(request)
