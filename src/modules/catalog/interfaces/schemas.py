"""Catalog API schemas (add-on protocol shapes)."""

from pydantic import BaseModel, Field


class CatalogExtra(BaseModel):
    name: str
    isRequired: bool = False
    options: list[str] | None = None


class CatalogDefinition(BaseModel):
    type: str = "tv"
    id: str
    name: str
    extra: list[CatalogExtra] = Field(default_factory=list)


class ManifestResponse(BaseModel):
    id: str
    name: str
    version: str
    description: str
    resources: list[str]
    types: list[str]
    idPrefixes: list[str]
    catalogs: list[CatalogDefinition]


class MetaPreview(BaseModel):
    """频道元数据（目录项与详情共用）。"""

    id: str
    type: str = "tv"
    name: str
    poster: str
    posterShape: str = "landscape"
    background: str
    logo: str
    description: str


class CatalogResponse(BaseModel):
    metas: list[MetaPreview]


class MetaResponse(BaseModel):
    meta: MetaPreview | dict = Field(default_factory=dict)
