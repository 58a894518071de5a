# admin models — platform statistics for the admin dashboard

from pydantic import BaseModel, Field


class AdminStats(BaseModel):
    total_users: int = Field(0, alias="totalUsers")
    pending_psychologists: int = Field(0, alias="pendingPsychologists")
    approved_psychologists: int = Field(0, alias="approvedPsychologists")
    total_assessments: int = Field(0, alias="totalAssessments")
    completed_assessments: int = Field(0, alias="completedAssessments")

    model_config = {"populate_by_name": True}
