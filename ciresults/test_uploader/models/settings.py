"""Configuration model for a single upload run."""

from pydantic import BaseModel, ConfigDict, Field

from ciresults.test_uploader.models.test_record import Provenance


class Settings(BaseModel):
    """Settings read once at startup and passed to every component."""

    model_config = ConfigDict(
        frozen=True, str_min_length=1, coerce_numbers_to_str=True
    )

    project_id: str = Field(..., description="BigQuery project ID")
    dataset: str = Field(..., description="BigQuery dataset name")
    table: str = Field(..., description="BigQuery table name")
    bucket: str = Field(..., description="GCS bucket for staged test results")

    repo: str = Field(..., description="Source repository URL")
    stage: str = Field(..., description="Pipeline stage name")
    branch: str = Field(..., description="Branch name")
    run: str = Field(..., description="CI build number")
    commit: str = Field(..., description="Commit SHA")

    load_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the load job (unbounded when unset)",
    )

    @property
    def provenance(self) -> Provenance:
        """Provenance stamped onto every uploaded record."""
        return Provenance(
            repo=self.repo,
            branch=self.branch,
            commit=self.commit,
            run=self.run,
            stage=self.stage,
        )

    @property
    def table_id(self) -> str:
        """Fully qualified destination table ID."""
        return f"{self.project_id}.{self.dataset}.{self.table}"
