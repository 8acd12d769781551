from appraisal.models.appraisal_history import AppraisalHistoryEntry
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.audit_event import AuditEvent
from appraisal.models.cycle import AppraisalCycle, CycleTemplateBinding
from appraisal.models.dispute import AppraisalDispute
from appraisal.models.employee import Employee
from appraisal.models.org import Department, Position
from appraisal.models.rbac import Role, UserRole
from appraisal.models.record import AppraisalRecord
from appraisal.models.template import AppraisalTemplate
from appraisal.models.user import User

__all__ = [ "AppraisalHistoryEntry", "AppraisalAssignment", "AuditEvent",
           "AppraisalCycle", "CycleTemplateBinding", "AppraisalDispute",
           "Employee", "Department", "Position", "Role", "UserRole",
           "AppraisalRecord", "AppraisalTemplate", "User" ]
