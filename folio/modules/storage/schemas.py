from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateBucketRequest(BaseModel):
    name: str = Field(min_length=3, max_length=63, pattern=r"^[a-z0-9][a-z0-9.-]+[a-z0-9]$")
    public: bool = True


class BucketResponse(BaseModel):
    id: str
    name: str
    public: bool
    created_at: Optional[str] = None


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    id: str
    full_path: str = Field(alias="fullPath")


class RemoveRequest(BaseModel):
    paths: List[str]


class SignedUrlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    expires_in: int = Field(default=3600, alias="expiresIn", gt=0, le=7 * 24 * 3600)


class SignedUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_url: str = Field(alias="signedUrl")
