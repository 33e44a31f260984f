from pydantic import BaseModel, ConfigDict

from analyzer.analysis.models import AnalysisKind
from analyzer.errors import TemplateNotFoundError


class AnalysisTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    analysis_kind: AnalysisKind


# Sample analysis templates for social science
TEMPLATES: tuple[AnalysisTemplate, ...] = (
    AnalysisTemplate(
        title="Descriptive Statistics",
        description="Get basic stats, missing data overview, and distributions",
        analysis_kind=AnalysisKind.DESCRIPTIVE,
    ),
    AnalysisTemplate(
        title="Chi-Square Test",
        description="Test relationships between categorical variables",
        analysis_kind=AnalysisKind.CHI_SQUARE,
    ),
    AnalysisTemplate(
        title="Correlation Analysis",
        description="Explore relationships between numeric variables",
        analysis_kind=AnalysisKind.CORRELATION,
    ),
    AnalysisTemplate(
        title="Missing Data Analysis",
        description="Identify patterns in missing data",
        analysis_kind=AnalysisKind.MISSING_DATA,
    ),
    AnalysisTemplate(
        title="Demographic Breakdown",
        description="Analyze by demographic categories",
        analysis_kind=AnalysisKind.DEMOGRAPHIC,
    ),
)


def get_template(kind: str) -> AnalysisTemplate:
    for template in TEMPLATES:
        if template.analysis_kind.value == kind:
            return template
    raise TemplateNotFoundError(kind)
