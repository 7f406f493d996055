from abc import abstractmethod
from datetime import date
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _blank_to_none(value: Any) -> Any:
    # Optional columns are written as null when the sheet/form left them empty
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
OptionalUUID = Annotated[Optional[UUID], BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]


# ----- Import rows (one model per role) -----
class ImportRowBase(BaseModel):
    """Fields every imported account needs. Keys follow the school's column names."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    nama: str = Field(..., min_length=1, description="Display name, stored as user_metadata.nama")
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @abstractmethod
    def profile_values(self, user_id: UUID, next_student_number: Callable[[], str]) -> Dict[str, Any]:
        """Row for the role table named by `role`."""


class TeacherImportRow(ImportRowBase):
    role: Literal["guru"]
    nip: OptionalText = None

    def profile_values(self, user_id: UUID, next_student_number: Callable[[], str]) -> Dict[str, Any]:
        return {"user_id": user_id, "nip": self.nip}


class StudentImportRow(ImportRowBase):
    role: Literal["siswa"]
    nis: OptionalText = None
    kelas_id: OptionalUUID = None
    tanggal_lahir: OptionalDate = None
    alamat: OptionalText = None

    def profile_values(self, user_id: UUID, next_student_number: Callable[[], str]) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "nis": self.nis or next_student_number(),
            "kelas_id": self.kelas_id,
            "tanggal_lahir": self.tanggal_lahir,
            "alamat": self.alamat,
        }


class GuardianImportRow(ImportRowBase):
    role: Literal["orang_tua"]
    telepon: OptionalText = None
    alamat: OptionalText = None

    def profile_values(self, user_id: UUID, next_student_number: Callable[[], str]) -> Dict[str, Any]:
        return {"user_id": user_id, "telepon": self.telepon, "alamat": self.alamat}


ImportRow = Annotated[
    Union[TeacherImportRow, StudentImportRow, GuardianImportRow],
    Field(discriminator="role"),
]


# ----- Results -----
class ImportResult(BaseModel):
    """Outcome of one input row. error is set only when success is false."""

    email: str
    success: bool
    error: Optional[str] = None


class BulkImportResponse(BaseModel):
    message: str
    results: List[ImportResult]

    def to_json(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "results": [r.model_dump(exclude_none=True) for r in self.results],
        }
