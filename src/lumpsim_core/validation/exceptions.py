# src/lumpsim_core/validation/exceptions.py
"""
The diagnosable exception raised when network validation finds error-level issues.
Warnings and info findings are returned to the caller and never raise.
"""
from typing import List

from .issues import ValidationIssue, ValidationIssueLevel
from ..errors import DiagnosableError, format_diagnostic_report


class NetworkValidationError(DiagnosableError):
    """
    Container for the ERROR-level `ValidationIssue`s of one validation pass,
    formatted into a single diagnostic report.
    """
    def __init__(self, issues: List[ValidationIssue]):
        self.issues: List[ValidationIssue] = [
            issue for issue in issues if issue.level == ValidationIssueLevel.ERROR
        ]
        if not self.issues:
            summary_message = "NetworkValidationError was raised with no error-level issues."
        else:
            summary_message = (
                f"Network validation failed with {len(self.issues)} error(s):\n"
                + "\n".join(f"  - {issue}" for issue in self.issues)
            )
        super().__init__(summary_message)

    def get_diagnostic_report(self) -> str:
        details = (
            f"One or more errors were found in the network description.\n"
            f"Found {len(self.issues)} error(s). See details below:\n\n"
            + "\n".join(f"  - {issue}" for issue in self.issues)
        )

        # The first error is taken as the primary point of failure.
        context = {}
        if self.issues:
            first_issue = self.issues[0]
            context['fqn'] = first_issue.component_fqn or first_issue.node_name or 'Multiple'
            if source_path := first_issue.details.get('source_yaml_path'):
                context['source_file'] = source_path

        return format_diagnostic_report(
            error_type="Network Validation Error",
            details=details,
            suggestion="Review and correct all validation errors listed above in the network description.",
            context=context
        )
