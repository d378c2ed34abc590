"""
Extraction contracts sent to the AI service with every transcript.

A contract bundles the system instruction (the extraction rules), the user
prompt and the JSON schema the answer must follow. Schemas are written in
plain JSON-Schema form; transports convert them to whatever dialect their
provider expects.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class ExtractionContract:
    name: str
    system_instruction: str
    prompt: str
    response_schema: Dict[str, Any] = field(default_factory=dict)

    @property
    def expects_object(self) -> bool:
        return self.response_schema.get("type") == "object"


SUBJECT_SCHEMA = {
    "type": "object",
    "properties": {
        "subjectCode": {"type": "string"},
        "subjectName": {"type": "string"},
        "mark": {"type": "number"},
        "status": {"type": "string"},
    },
    "required": ["subjectCode", "subjectName", "mark", "status"],
}


EXTRACTION_RULES = """You are an expert academic transcript parser.
You MUST follow these rules:
1. Read every academic year section of the transcript.
2. Extract every subject listed in a year, including failed, absent and supplementary ones.
3. Copy the status exactly as printed (e.g. PASS, PASS WITH DISTINCTION, SUPPLEMENTARY PASSED, FAIL, ABSENT, SUPPLEMENTARY).
4. The mark MUST be a number between 0 and 100.
5. If a subject code is not present (e.g. for a project module), use the subject name as the code.
6. Keep the year label as the transcript prints it (e.g. "2023" or "Year 3").
7. Return valid JSON only - no explanation text, no markdown.
8. If you cannot find any subjects, return: {"error": "No subjects found", "years": []}"""


SUBJECT_LIST_CONTRACT = ExtractionContract(
    name="subject_list",
    system_instruction=EXTRACTION_RULES,
    prompt="Extract all subjects from this academic transcript as a JSON array.",
    response_schema={"type": "array", "items": SUBJECT_SCHEMA},
)


MULTI_YEAR_CONTRACT = ExtractionContract(
    name="multi_year",
    system_instruction=EXTRACTION_RULES + """
9. Group subjects by academic year, in the order the years appear.
10. Put short observations about the record in "notes" and suggested areas of improvement in "recommendations".""",
    prompt="Extract every academic year and its subjects from this transcript.",
    response_schema={
        "type": "object",
        "properties": {
            "years": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "year": {"type": "string"},
                        "subjects": {"type": "array", "items": SUBJECT_SCHEMA},
                    },
                    "required": ["year", "subjects"],
                },
            },
            "notes": {"type": "string"},
            "recommendations": {"type": "string"},
            "error": {"type": "string"},
        },
        "required": ["years"],
    },
)
