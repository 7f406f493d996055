from enum import Enum


class AppRole(str, Enum):
    """Values of user_roles.role."""

    ADMIN = "admin"
    TEACHER = "guru"
    STUDENT = "siswa"
    GUARDIAN = "orang_tua"


# Roles an admin may create through the bulk importer
IMPORTABLE_ROLES = (AppRole.TEACHER, AppRole.STUDENT, AppRole.GUARDIAN)


class TemplateFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
