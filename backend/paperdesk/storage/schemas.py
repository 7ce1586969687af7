import uuid

from pydantic import BaseModel


class FileMetadataResponse(BaseModel):
    id: uuid.UUID
    storage_id: str
    original_name: str
    file_type: str
    file_size: int
    uploaded_by: uuid.UUID
    is_processed: bool
    created_at: int

    model_config = {"from_attributes": True}


class FileUrlResponse(BaseModel):
    storage_id: str
    url: str
