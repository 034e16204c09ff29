import uuid
from datetime import datetime
from enum import Enum
from pydantic import AliasChoices, BaseModel, Field, model_validator
from app.modules.consent.schemas import ConsentRecordOut

class ExportType(str, Enum):
    USERS = "users"
    AUDIT_LOGS = "audit_logs"
    COMPLIANCE = "compliance"
    ALL = "all"

class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"

# only flat sections have a tabular form
CSV_EXPORTS = {ExportType.USERS, ExportType.AUDIT_LOGS}

class ComplianceExportRequest(BaseModel):
    export_type: ExportType = Field(validation_alias=AliasChoices("export_type", "exportType"))
    format: ExportFormat = ExportFormat.JSON
    start_date: datetime | None = Field(default=None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: datetime | None = Field(default=None, validation_alias=AliasChoices("end_date", "endDate"))

    @model_validator(mode="after")
    def _check(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        if self.format is ExportFormat.CSV and self.export_type not in CSV_EXPORTS:
            raise ValueError("csv is available for users and audit_logs exports only")
        return self

class ConsentLedgerRowOut(ConsentRecordOut):
    user_id: uuid.UUID
