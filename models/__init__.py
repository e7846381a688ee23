from .student import Student
from .teacher import Teacher
from .activity import CoCurricularActivity
from .attendance import AttendanceRecord
from .cep import CEPRequirement, CEPSubmission, CEPApproval
from .field_project import FieldProjectSubmission, FieldProjectApproval
__all__ = ["Student", "Teacher", "CoCurricularActivity", "AttendanceRecord", "CEPRequirement", "CEPSubmission", "CEPApproval", "FieldProjectSubmission", "FieldProjectApproval"]
