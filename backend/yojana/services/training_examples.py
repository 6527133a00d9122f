"""
Yojana RAG — Training Example Generator
Eight synthetic queries per scheme, in English, Hindi and Tamil,
each paired with the response the assistant is expected to give.
"""

from yojana.models.scheme import SchemeRecord
from yojana.models.training import TrainingExample


# (template, language, difficulty, category)
QUERY_TEMPLATES = [
    ("What is {name}?", "en", "easy", "general"),
    ("{name} के बारे में बताएं", "hi", "easy", "general"),
    ("{name} பற்றி சொல்லுங்கள்", "ta", "easy", "general"),
    ("Who is eligible for {name}?", "en", "medium", "eligibility"),
    ("{name} के लिए कौन पात्र है?", "hi", "medium", "eligibility"),
    ("What are the benefits of {name}?", "en", "easy", "benefits"),
    ("How to apply for {name}?", "en", "hard", "procedure"),
    ("Tell me about {category} schemes", "en", "medium", "category"),
]


def expected_response(scheme: SchemeRecord, category: str, language: str) -> str:
    """Reference answer, using the localized field when the scheme has one."""
    def value(field: str):
        return scheme.localized_value(language, field)

    if category == "eligibility":
        return f"Eligibility criteria: {', '.join(value('eligibility'))}"
    if category == "benefits":
        return f"Benefits: {value('benefits')}"
    if category == "procedure":
        return f"Application procedure: {', '.join(value('application_procedure'))}"
    if category == "category":
        return f"{value('category')} scheme: {scheme.name}"
    return f"{value('name')} is a government scheme. {value('objective')}"


def generate_examples(scheme: SchemeRecord) -> list[TrainingExample]:
    return [
        TrainingExample(
            query=template.format(name=scheme.name, category=scheme.category),
            language=language,
            expected_scheme_id=scheme.id,
            category=category,
            difficulty=difficulty,
            expected_response=expected_response(scheme, category, language),
        )
        for template, language, difficulty, category in QUERY_TEMPLATES
    ]


def generate_training_examples(schemes: list[SchemeRecord]) -> list[TrainingExample]:
    examples = []
    for scheme in schemes:
        examples.extend(generate_examples(scheme))
    return examples
