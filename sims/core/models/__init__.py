from sims.core.models.school_class import SchoolClass
from sims.core.models.teacher import Teacher
from sims.core.models.guardian import Guardian
from sims.core.models.student import Student
