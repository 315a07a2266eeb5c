"""
Email template substitution.

Placeholders are written ``{{key}}`` and replaced literally. There is no
escaping, no conditionals and no loops; a placeholder with no matching
variable is left in the output untouched.
"""

from typing import Any, Mapping

DEFAULT_REMINDER_TEMPLATE_NAME = "Reminder"

DEFAULT_REMINDER_SUBJECT = "Reminder: your appointment with {{doctorName}}"

DEFAULT_REMINDER_BODY = (
    "Dear {{employeeName}},\n"
    "\n"
    "This is a reminder of your appointment at the clinic.\n"
    "\n"
    "Doctor: {{doctorName}}\n"
    "Nurse: {{nurseName}}\n"
    "Date and time: {{reservationDateTime}}\n"
    "\n"
    "If you cannot attend, please contact the clinic to reschedule."
)


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{key}}`` in ``template`` with ``str(variables[key])``.

    Examples:
        >>> render_template("Hello {{name}}", {"name": "Hanako"})
        'Hello Hanako'
        >>> render_template("Hello {{name}} {{unknown}}", {"name": "Hanako"})
        'Hello Hanako {{unknown}}'
    """
    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", str(value))
    return result
