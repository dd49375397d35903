from pydantic import BaseModel
from typing import List, Optional
from appraisal.models.evaluation import EvaluationStatus
from appraisal.schemas.appraisal_group import EmployeeSummary
from appraisal.schemas.evaluation import EvaluationResponse


class EmployeeProgress(BaseModel):
    employee: EmployeeSummary
    evaluation: Optional[EvaluationResponse] = None
    status: EvaluationStatus = EvaluationStatus.NOT_STARTED
    is_completed: bool = False


class ProgressReport(BaseModel):
    campaign_id: int
    total_employees: int = 0
    completed_evaluations: int = 0
    percentage: int = 0
    employee_progress: List[EmployeeProgress] = []
