from typing import List

from pydantic import BaseModel, Field


class ImageUploadResponse(BaseModel):
    url: str = Field(..., description="Public URL of the stored image")


class ImageBatchUploadResponse(BaseModel):
    urls: List[str] = Field(default_factory=list, description="Public URLs in upload order")
