"""
System field catalog and column mapping schemas.

The system fields are static configuration: the import template every
spreadsheet is mapped onto.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """Declared value type of a system field."""
    TEXT = "text"
    NUMBER = "number"
    URL = "url"
    BOOLEAN = "boolean"


class SystemField(BaseModel):
    """One target field of the import template."""
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    required: bool = False
    type: FieldType = FieldType.TEXT
    max_length: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class ColumnMapping(BaseModel):
    """
    Assignment of a spreadsheet column to a system field.

    Column names are kept verbatim (no whitespace trimming) since they are
    used as row keys.
    """
    model_config = ConfigDict(frozen=True)

    field_key: str = Field(..., description="System field key, e.g. 'codigo'")
    column: Optional[str] = Field(None, description="Spreadsheet column or None when unmapped")


class MappingStats(BaseModel):
    """Read-only summary of a mapping set."""
    required_mapped: int
    required_total: int
    total_mapped: int
    unused_columns: list[str]

    @property
    def all_required_mapped(self) -> bool:
        return self.required_mapped == self.required_total


SYSTEM_FIELDS: tuple[SystemField, ...] = (
    SystemField(key="codigo", label="Codigo", required=True, max_length=100,
                description="Código único del producto (SKU)"),
    SystemField(key="producto", label="Producto", required=True, max_length=500,
                description="Nombre del producto"),
    SystemField(key="precio", label="Precio", required=True, type=FieldType.NUMBER,
                description="Precio en USD"),
    SystemField(key="imagen", label="Imagen", type=FieldType.URL,
                description="URL de la imagen"),
    SystemField(key="suministrador", label="Suministrador", max_length=200),
    SystemField(key="almacen", label="Almacen", max_length=200),
    SystemField(key="categoria", label="Categoria", max_length=200),
    SystemField(key="precio_p", label="Precio P", type=FieldType.NUMBER,
                description="Precio alternativo P"),
    SystemField(key="precio_m", label="Precio M.", type=FieldType.NUMBER,
                description="Precio alternativo M"),
    SystemField(key="filtro_imagenes", label="Filtro para Imagenes"),
    SystemField(key="ef_tkc", label="EF TKC"),
    SystemField(key="id_tienda", label="ID Tienda", max_length=100),
    SystemField(key="estado_anuncio", label="Estado Anuncio"),
    SystemField(key="estado_tienda", label="Estado en Tienda"),
    SystemField(key="tienda", label="Tienda", max_length=200),
    SystemField(key="selecto", label="Selecto", type=FieldType.BOOLEAN,
                description="Producto seleccionado"),
    SystemField(key="cat_f1", label="Cat.F1", max_length=200,
                description="Categoría nivel 1"),
    SystemField(key="cat_f2", label="Cat.F2", max_length=200,
                description="Categoría nivel 2"),
    SystemField(key="cat_f3", label="Cat.F3", max_length=200,
                description="Categoría nivel 3"),
)

# Natural key of a catalog item
CODE_FIELD = "codigo"
