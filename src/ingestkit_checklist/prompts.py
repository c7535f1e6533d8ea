"""Prompt text for checklist extraction."""

from __future__ import annotations

from ingestkit_checklist.models import FieldType

EXPECTED_HEADER = "question|type|option|required|isDependent|dependentOn|dependentOptions"

_FIELD_DESCRIPTIONS: dict[FieldType, str] = {
    FieldType.TEXT_FIELD: "Single line text input",
    FieldType.TEXT_AREA: "Multi-line text input",
    FieldType.DATE: "Date picker",
    FieldType.TIME: "Time picker",
    FieldType.DATE_TIME: "Date and time picker",
    FieldType.DROPDOWN: "Single selection dropdown",
    FieldType.RADIO: "Single selection radio buttons",
    FieldType.CHECKBOX: "Multiple selection checkboxes",
    FieldType.MULTI_IMAGE: "Image upload field",
    FieldType.SIGNATURE: "Signature capture field",
    FieldType.HEADER: "Section header",
}


def build_system_prompt() -> str:
    """Return the fixed system instruction: task, output schema, field semantics."""
    type_lines = "\n".join(
        f"- {field_type.value}: {description}"
        for field_type, description in _FIELD_DESCRIPTIONS.items()
    )
    return (
        "You are an expert at parsing Excel data and converting it into "
        "structured checklist items.\n"
        "\n"
        "TASK: Convert Excel text data into a JSON array of checklist items.\n"
        "\n"
        "INPUT FORMAT: The Excel data follows this pattern:\n"
        f"- Header row: {EXPECTED_HEADER}\n"
        "- Each subsequent row represents one checklist item\n"
        "\n"
        "SUPPORTED TYPES:\n"
        f"{type_lines}\n"
        "\n"
        "OUTPUT FORMAT: Return a valid JSON array with this exact structure:\n"
        "[\n"
        "  {\n"
        '    "id": 1,\n'
        '    "question": "Select your state",\n'
        '    "type": "dropdown",\n'
        '    "options": "Tamil Nadu,Kerala,Karnataka",\n'
        '    "required": true,\n'
        '    "isDependent": false,\n'
        '    "dependentOn": "",\n'
        '    "dependentOptions": ""\n'
        "  }\n"
        "]\n"
        "\n"
        "RULES:\n"
        '1. Extract ONLY the question text (remove any prefixes like "Question:")\n'
        '2. Map input types to supported types (if unsure, use "textField")\n'
        "3. For dropdown/radio/checkbox: combine options with commas\n"
        '4. Convert "Yes"/"No"/"True"/"False" to boolean for required field\n'
        "5. Emit exactly one item per data row, in input order, with sequential "
        "IDs starting from 1\n"
        "6. Return ONLY valid JSON - no explanations or markdown\n"
        "7. If no valid data found, return an empty array: []\n"
    )


def build_user_message(chunk_text: str) -> str:
    """Wrap the chunk's header+rows text in the user turn."""
    return f"Extract checklist items from this Excel data:\n\n{chunk_text}"
