from typing import List

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class ImageAssetOut(BaseModel):
    """An image bound to a slot."""

    model_config = ConfigDict(from_attributes=True)

    path: str = Field(..., description="Project-relative image path.")
    width: int = Field(..., description="Pixel width.")
    height: int = Field(..., description="Pixel height.")


class SlotOut(BaseModel):
    """One picture slot as found by the latest scan."""

    container_kind: str = Field(..., description="'template' or 'scene'.")
    container_path: str = Field(..., description="Container path relative to the content directory.")
    hierarchy_path: str = Field(..., description="Slash-separated node path inside the container.")
    kind: str = Field(..., description="'changer' for multi-image slots, 'picture' for material slots.")
    size_group: str = Field(..., description="'WxH', 'Mixed' or 'Unknown'.")
    orientation: str = Field(..., description="'portrait' or 'landscape'.")
    images: List[ImageAssetOut] = Field(default_factory=list)


class ScanResponse(BaseModel):
    """Result of the scan-and-report command."""

    slot_count: NonNegativeInt
    size_groups: dict[str, int] = Field(
        default_factory=dict,
        description="Number of slots per size group.",
    )
    report_path: str | None = Field(default=None, description="Where the text report was written.")
    created_folders: List[str] = Field(default_factory=list)
    cancelled: bool = False


class AssignRequest(BaseModel):
    """Request body for compress-and-assign."""

    confirm: bool = Field(
        default=False,
        description="Must be true; the command rewrites scene bindings.",
    )
    seed: int | None = Field(
        default=None,
        description="Optional seed for the random source, for reproducible runs.",
    )


class GenerationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    portrait_count: NonNegativeInt
    landscape_count: NonNegativeInt
    skipped_existing: NonNegativeInt
    failed: List[str] = Field(default_factory=list)
    cancelled: bool = False


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assigned_slots: NonNegativeInt
    skipped_slots: NonNegativeInt
    updated_containers: List[str] = Field(default_factory=list)
    cancelled: bool = False


class AssignResponse(BaseModel):
    """Result of compress-and-assign."""

    generation: GenerationOut
    assignment: AssignmentOut


class CleanRequest(BaseModel):
    confirm: bool = Field(
        default=False,
        description="Must be true; deleted variants cannot be recovered.",
    )


class CleanResponse(BaseModel):
    """Result of cleaning unreferenced compressed variants."""

    model_config = ConfigDict(from_attributes=True)

    deleted_count: NonNegativeInt
    kept_count: NonNegativeInt
    deleted: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    cancelled: bool = False


class BindRequest(BaseModel):
    container_path: str = Field(..., description="Container path relative to the content directory.")
    hierarchy_path: str = Field(..., description="Node path of the picture changer to bind.")
