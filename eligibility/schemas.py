from typing import Annotated, Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field


def _ids(value: Any) -> Any:
    # the admin UI sends either [1, 2] or [{"id": 1}, {"id": 2}]
    if isinstance(value, list):
        return [v.get("id") if isinstance(v, dict) else v for v in value]
    return value


IdList = Annotated[List[int], BeforeValidator(_ids)]


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --------- Rule input ----------
class GradeRequirementInput(_Input):
    grade: str
    count: int


class SubjectSpecificGradeInput(_Input):
    subject_id: int = Field(validation_alias=AliasChoices("subjectId", "subject_id"))
    min_grade: str = Field(validation_alias=AliasChoices("minGrade", "grade", "min_grade"))


class BasketInput(_Input):
    id: Union[str, int]
    name: str = ""
    subject_ids: IdList = Field(
        default_factory=list, validation_alias=AliasChoices("subjectIds", "subjects", "subject_ids")
    )
    min_required: int = Field(0, validation_alias=AliasChoices("minRequired", "min_required"))
    max_allowed: Optional[int] = Field(None, validation_alias=AliasChoices("maxAllowed", "max_allowed"))
    internal_logic: str = Field("OR", validation_alias=AliasChoices("internalLogic", "logic", "internal_logic"))
    grade_requirements: List[GradeRequirementInput] = Field(
        default_factory=list, validation_alias=AliasChoices("gradeRequirements", "grade_requirements")
    )
    # older single-grade form, kept for backward compatibility
    grade_requirement: Optional[str] = Field(
        None, validation_alias=AliasChoices("gradeRequirement", "grade_requirement")
    )
    subject_specific_grades: List[SubjectSpecificGradeInput] = Field(
        default_factory=list, validation_alias=AliasChoices("subjectSpecificGrades", "subject_specific_grades")
    )


class BasketLogicRuleInput(_Input):
    id: Optional[Union[str, int]] = None
    logic: str
    primary_basket_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("primaryBasketId", "primary_basket_id")
    )
    target_basket_ids: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("targetBasketIds", "target_basket_ids")
    )
    selected_baskets: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("selectedBaskets", "selected_baskets")
    )


class BasketRelationshipInput(_Input):
    basket1: str
    basket2: str
    relationship: str


class OLRequirementInput(_Input):
    type: Optional[str] = None
    id: Optional[Union[str, int]] = None
    subject_id: Optional[int] = Field(None, validation_alias=AliasChoices("subjectId", "subject_id"))
    subject_ids: Optional[IdList] = Field(None, validation_alias=AliasChoices("subjectIds", "subject_ids"))
    min_grade: str = Field(validation_alias=AliasChoices("minGrade", "minimumGrade", "grade", "min_grade"))
    required_count: Optional[int] = Field(
        None, validation_alias=AliasChoices("requiredCount", "required_count")
    )
    required: bool = True


class CourseRequirementInput(_Input):
    min_qualification_tier: str = Field(
        validation_alias=AliasChoices("minQualificationTier", "minRequirement", "min_qualification_tier")
    )
    ol_requirements: List[OLRequirementInput] = Field(
        default_factory=list, validation_alias=AliasChoices("olRequirements", "ol_requirements")
    )
    baskets: List[BasketInput] = Field(
        default_factory=list, validation_alias=AliasChoices("baskets", "subjectBaskets")
    )
    basket_logic_rules: List[BasketLogicRuleInput] = Field(
        default_factory=list, validation_alias=AliasChoices("basketLogicRules", "basket_logic_rules")
    )
    basket_relationships: List[BasketRelationshipInput] = Field(
        default_factory=list, validation_alias=AliasChoices("basketRelationships", "basket_relationships")
    )
    streams: IdList = Field(default_factory=list)


class CourseInput(_Input):
    id: Union[str, int]
    name: str = ""
    university: str = ""
    requirements: CourseRequirementInput


# --------- Candidate input ----------
class SubjectRecordInput(_Input):
    subject_id: int = Field(validation_alias=AliasChoices("subjectId", "subject_id"))
    level: str
    grade: Any = None  # off-scale values are kept and handled downstream


class CandidateInput(_Input):
    stream_id: Optional[int] = Field(None, validation_alias=AliasChoices("streamId", "stream_id"))
    records: List[SubjectRecordInput] = Field(
        default_factory=list, validation_alias=AliasChoices("records", "subjects")
    )
