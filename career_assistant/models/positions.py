"""Job position and search result models.

Field names on the wire follow the position search service (camelCase);
the models expose snake_case attributes and a few derived display values.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

POSITION_TYPE_LABELS = {
    "1": "全职",
    "2": "零工/兼职",
    "3": "实习",
    "4": "急聘",
}


class Position(BaseModel):
    """One job listing.

    Only ``id`` is required; every other field is optional because the
    search service omits what it does not know.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str
    title: str | None = Field(None, alias="positionName")
    company_name: str | None = Field(None, alias="companyName")
    ce_name: str | None = Field(None, alias="ceName")
    work_place: str | None = Field(None, alias="workPlaceStr")
    localhost_text: str | None = Field(None, alias="localhostText")
    salary_label: str | None = Field(None, alias="salaryText")
    min_salary: int | float | str | None = Field(None, alias="minSalary")
    max_salary: int | float | str | None = Field(None, alias="maxSalary")
    part_time_salary: str | None = Field(None, alias="partTimeSalary")
    part_time_salary_unit: str | None = Field(None, alias="partTimeSalaryTypeText")
    posted_at: int | str | None = Field(None, alias="lastSendTime")
    position_type: str | None = Field(None, alias="positionType")
    urgent: bool = Field(False, alias="isUrgent")
    education: str | None = Field(None, alias="educationStr")
    job_type: str | None = Field(None, alias="jobTypeText")

    @field_validator("id", "position_type", "part_time_salary", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> Any:
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("urgent", mode="before")
    @classmethod
    def parse_urgent_flag(cls, v: Any) -> bool:
        return v is True or v == 1 or v == "1"

    @property
    def company(self) -> str | None:
        return self.company_name or self.ce_name

    @property
    def location(self) -> str | None:
        return self.work_place or self.localhost_text

    @property
    def salary_text(self) -> str:
        """Human-readable salary, preferring the most specific descriptor."""
        if self.part_time_salary and self.part_time_salary_unit:
            return f"{self.part_time_salary}{self.part_time_salary_unit}"
        if self.salary_label:
            return self.salary_label
        if self.min_salary and self.max_salary:
            return f"{self.min_salary}-{self.max_salary}元/月"
        return "薪资面议"

    @property
    def position_type_label(self) -> str:
        return POSITION_TYPE_LABELS.get(self.position_type or "", "未知")


class PositionPage(BaseModel):
    """The ``data`` block of a position search response.

    Items stay raw so one malformed listing does not discard the page.
    """

    items: list[dict[str, Any]] = Field(default_factory=list, alias="list")
    count: int = 0


class ViewMoreLink(BaseModel):
    params: dict[str, Any] = Field(default_factory=dict)


class PositionSearchResponse(BaseModel):
    """Response of the position search service, inline or fetched."""

    code: str | None = None
    data: PositionPage | None = None
    view_more_link: ViewMoreLink | None = None
    search_summary: str | None = None

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def ok(self) -> bool:
        return self.code is None or self.code == "200"


class SearchResultSet(BaseModel):
    """Cumulative, deduplicated positions gathered for one turn.

    Attributes:
        items: Positions in arrival order, unique by id.
        total_count: Total positions the server reports as available.
        has_more: Whether another page may be requested.
        next_page_params: Parameters for the next page request.
        summary: Optional server-provided search summary.
    """

    items: list[Position] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    next_page_params: dict[str, Any] = Field(default_factory=dict)
    summary: str | None = None
