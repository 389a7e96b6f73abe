from datetime import date, timedelta
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator, model_validator

from errors import TaskValidationError

Priority = Literal["high", "medium", "low"]
Category = Literal["work", "personal", "health", "shopping", "learning"]
TaskStatus = Literal["all", "completed", "pending"]
SortField = Literal["created_at", "updated_at", "priority", "due_date"]
SortOrder = Literal["asc", "desc"]
Intent = Literal["CREATE", "READ", "UPDATE", "DELETE"]

PRIORITIES: tuple[str, ...] = get_args(Priority)
CATEGORIES: tuple[str, ...] = get_args(Category)
PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

# Relative date words the assistant may emit instead of an ISO date
TODAY_TOKENS = frozenset({"today", "오늘"})
TOMORROW_TOKENS = frozenset({"tomorrow", "내일"})
TIME_KEYS = ("time", "시간")


def _blank_date_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


DueDate = Annotated[Optional[date], BeforeValidator(_blank_date_to_none)]


class Task(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    priority: Priority = "medium"
    category: Category = "personal"
    due_date: Optional[date] = None
    order_index: int = 0
    created_at: str  # ISO format datetime string
    updated_at: str


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    priority: Priority = "medium"
    category: Category = "personal"
    due_date: DueDate = None


class TaskUpdate(BaseModel):
    """Partial patch. Only fields present in the input are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    due_date: DueDate = None
    order_index: Optional[int] = None

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self):
        for field in ("title", "completed", "priority", "category", "order_index"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        """Column values for the fields the caller actually sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class AssistantTaskUpdate(TaskUpdate):
    """Update map produced by the model. Unknown keys are an error, not ignored."""

    model_config = ConfigDict(extra="forbid")


class TaskFilters(BaseModel):
    status: TaskStatus = "all"
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    search: Optional[str] = None
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


# Assistant reply, as parsed from the model's JSON
class ReplyData(BaseModel):
    todos: list[Any] = Field(default_factory=list)
    query: Optional[str] = None
    response: Optional[str] = None
    conditions: dict[str, Any] = Field(default_factory=dict)
    updates: dict[str, Any] = Field(default_factory=dict)

    @field_validator("todos", "conditions", "updates", mode="before")
    @classmethod
    def _null_to_empty(cls, value, info):
        if value is None:
            return [] if info.field_name == "todos" else {}
        return value


class AssistantReply(BaseModel):
    action: Intent
    message: str = ""
    data: ReplyData = Field(default_factory=ReplyData)

    @field_validator("action", mode="before")
    @classmethod
    def _upper_action(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("message", mode="before")
    @classmethod
    def _null_message(cls, value):
        return "" if value is None else value

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value):
        return {} if value is None else value


# Conditions the assistant can use to select tasks for UPDATE/DELETE
class DueToday(BaseModel):
    kind: Literal["due_today"] = "due_today"


class TitleContains(BaseModel):
    kind: Literal["title_contains"] = "title_contains"
    text: str = Field(min_length=1)


class CategoryEquals(BaseModel):
    kind: Literal["category_equals"] = "category_equals"
    category: Category


class CompletedEquals(BaseModel):
    kind: Literal["completed_equals"] = "completed_equals"
    completed: bool


TaskCondition = Annotated[
    Union[DueToday, TitleContains, CategoryEquals, CompletedEquals],
    Field(discriminator="kind"),
]


def resolve_due_date(value: Any, today: date) -> Any:
    """Turn "today"/"tomorrow" (English or Korean) into an ISO date string."""
    if not isinstance(value, str):
        return value
    token = value.strip().lower()
    if token in TODAY_TOKENS:
        return today.isoformat()
    if token in TOMORROW_TOKENS:
        return (today + timedelta(days=1)).isoformat()
    return value


def validate_task_create(data: Any) -> TaskCreate:
    try:
        return TaskCreate.model_validate(data)
    except ValidationError as e:
        raise TaskValidationError.from_pydantic(e) from e


def validate_task_update(data: Any) -> TaskUpdate:
    try:
        return TaskUpdate.model_validate(data)
    except ValidationError as e:
        raise TaskValidationError.from_pydantic(e) from e


def parse_conditions(raw: dict, today: date) -> list[TaskCondition]:
    """
    Convert the model's free-form condition map into typed conditions.
    Supported keys: due_date (today only), title, category, completed.
    """
    conditions: list[TaskCondition] = []
    try:
        for key, value in raw.items():
            if key == "due_date":
                if resolve_due_date(value, today) != today.isoformat():
                    raise TaskValidationError(
                        "Unsupported condition",
                        [{"field": "due_date", "message": f"only 'today' is supported, got {value!r}"}],
                    )
                conditions.append(DueToday())
            elif key == "title":
                conditions.append(TitleContains(text=str(value)))
            elif key == "category":
                conditions.append(CategoryEquals(category=value))
            elif key == "completed":
                conditions.append(CompletedEquals(completed=value))
            else:
                raise TaskValidationError(
                    "Unsupported condition",
                    [{"field": key, "message": "unsupported condition key"}],
                )
    except ValidationError as e:
        raise TaskValidationError.from_pydantic(e) from e
    return conditions


def parse_updates(raw: dict, today: date) -> tuple[TaskUpdate, Optional[str]]:
    """Validate the model's update map. Returns (update, time) with `time` split out."""
    fields = dict(raw)
    time_value = None
    for key in TIME_KEYS:
        if key in fields:
            time_value = fields.pop(key)
    if time_value is not None:
        time_value = str(time_value)
    if "due_date" in fields:
        fields["due_date"] = resolve_due_date(fields["due_date"], today)
    try:
        update = AssistantTaskUpdate.model_validate(fields)
    except ValidationError as e:
        raise TaskValidationError.from_pydantic(e) from e
    return update, time_value
