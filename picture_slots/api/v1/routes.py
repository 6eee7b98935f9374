from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, status

from picture_slots.api.v1.schemas import (
    AssignmentOut,
    AssignRequest,
    AssignResponse,
    BindRequest,
    CleanRequest,
    CleanResponse,
    GenerationOut,
    ImageAssetOut,
    ScanResponse,
    SlotOut,
)
from picture_slots.models.slots import Slot
from picture_slots.services.workflow import (
    ConfirmationRequiredError,
    InputFolderMissingError,
    NoSourceImagesError,
    PictureSlotService,
    SizeGroupUnresolvedError,
    SlotNotFoundError,
    get_picture_slot_service,
)

router = APIRouter(prefix="/api/v1")


def _slot_out(slot: Slot) -> SlotOut:
    return SlotOut(
        container_kind=slot.container_kind.value,
        container_path=slot.container_path,
        hierarchy_path=slot.hierarchy_path,
        kind=slot.kind.value,
        size_group=slot.size_group,
        orientation="portrait" if slot.portrait else "landscape",
        images=[ImageAssetOut.model_validate(image) for image in slot.images],
    )


@router.get("/health", tags=["health"])
async def health_check() -> dict:
    """API v1 health check endpoint."""
    return {"status": "ok", "api_version": "v1"}


@router.get(
    "/slots",
    response_model=list[SlotOut],
    tags=["slots"],
    summary="List every picture slot",
)
def list_slots(service: PictureSlotService = Depends(get_picture_slot_service)) -> list[SlotOut]:
    """Scan all containers and return the current slots without writing anything."""
    return [_slot_out(slot) for slot in service.list_slots()]


@router.post(
    "/scan",
    response_model=ScanResponse,
    tags=["commands"],
    summary="Scan usages and sizes",
)
def scan(service: PictureSlotService = Depends(get_picture_slot_service)) -> ScanResponse:
    """
    Scan every template and scene, write the usage report, and create one
    folder per literal `WxH` size group.
    """
    result = service.scan_and_report()
    return ScanResponse(
        slot_count=len(result.slots),
        size_groups=dict(Counter(slot.size_group for slot in result.slots)),
        report_path=result.report_path,
        created_folders=result.created_folders,
        cancelled=result.cancelled,
    )


@router.post(
    "/assign",
    response_model=AssignResponse,
    tags=["commands"],
    summary="Compress the raw pool and randomly assign images",
)
def assign(
    request: AssignRequest,
    service: PictureSlotService = Depends(get_picture_slot_service),
) -> AssignResponse:
    """
    Generate compressed variants from the raw image pool, then bind random
    variants of matching orientation to every frame slot in every scene.
    """
    try:
        generation, assignment = service.compress_and_assign(confirm=request.confirm, seed=request.seed)
    except ConfirmationRequiredError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InputFolderMissingError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NoSourceImagesError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return AssignResponse(
        generation=GenerationOut.model_validate(generation),
        assignment=AssignmentOut.model_validate(assignment),
    )


@router.post(
    "/clean",
    response_model=CleanResponse,
    tags=["commands"],
    summary="Delete unreferenced compressed images",
)
def clean(
    request: CleanRequest,
    service: PictureSlotService = Depends(get_picture_slot_service),
) -> CleanResponse:
    """Delete every compressed variant that no slot references. This cannot be undone."""
    try:
        report = service.clean_unreferenced(confirm=request.confirm)
    except ConfirmationRequiredError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return CleanResponse.model_validate(report)


@router.post(
    "/slots/bind-from-size-folder",
    response_model=SlotOut,
    tags=["slots"],
    summary="Bind a slot to every image in its size folder",
)
def bind_from_size_folder(
    request: BindRequest,
    service: PictureSlotService = Depends(get_picture_slot_service),
) -> SlotOut:
    try:
        slot = service.bind_from_size_folder(request.container_path, request.hierarchy_path)
    except SlotNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SizeGroupUnresolvedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _slot_out(slot)
