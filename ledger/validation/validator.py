"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Positive amounts, dates in order
- Unknown or read-only fields (balance, current_amount, ...)
- This catches malformed input before anything is written

STAGE 2 - SEMANTIC VALIDATION:
- Names that are blank or too long
- Notes that are too long
- References to accounts and categories that do not exist
- Category type that does not match the transaction type
- This catches input that parses but cannot be recorded

WHY TWO STAGES:
1. Separation of concerns (structural vs logical)
2. Better error messages (know exactly what kind of issue)
3. Can skip stage 2 if stage 1 fails
4. Stage 2 needs access to storage for reference checks

IMPORTANT: Validation NEVER silently fixes issues.
Errors raise ValidationError; warnings are returned for the caller to show.
"""

from typing import Any, Optional, TypeVar

import pydantic
from pydantic import BaseModel

from ledger.config import get_settings
from ledger.errors import ValidationError
from ledger.models.validation import ValidationIssue, ValidationResult
from ledger.services.storage import CollectionStorageInterface

PayloadT = TypeVar("PayloadT", bound=BaseModel)

# Fields holding a display name, per entity type
NAME_FIELDS = {
    "category": "name",
    "account": "name",
    "savings_goal": "name",
}


class LedgerValidator:
    """
    Validates create/update payloads through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (needs storage for reference checks)
    """

    def __init__(
        self,
        accounts: Optional[CollectionStorageInterface] = None,
        categories: Optional[CollectionStorageInterface] = None,
        audit_logger=None,
    ):
        """
        Initialize validator.

        Args:
            accounts: Accounts collection for reference checks.
            categories: Categories collection for reference checks.
                        If either is None, that reference check is skipped.
            audit_logger: Optional AuditLogger notified of failures.
        """
        self._accounts = accounts
        self._categories = categories
        self._audit = audit_logger
        self._settings = get_settings().app

    def _validate_schema(
        self,
        payload_cls: type[PayloadT],
        data: Any,
    ) -> tuple[Optional[PayloadT], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed payload or None, list_of_issues)
        """
        if isinstance(data, payload_cls):
            # Re-validate only what the caller set, so partial updates stay partial
            data = data.model_dump(exclude_unset=True)

        try:
            return payload_cls.model_validate(data), []
        except pydantic.ValidationError as e:
            issues = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "payload"
                if error["type"] == "missing":
                    issue_type = "missing"
                    fix = f"Provide a value for {field}"
                elif error["type"] == "extra_forbidden":
                    issue_type = "not_editable"
                    fix = f"Remove {field}; it is not accepted here"
                else:
                    issue_type = "invalid_value"
                    fix = None
                issues.append(ValidationIssue(
                    field=field,
                    issue_type=issue_type,
                    message=error["msg"],
                    severity="error",
                    suggested_fix=fix,
                ))
            return None, issues

    def _check_text(
        self,
        entity_type: str,
        values: dict,
    ) -> list[ValidationIssue]:
        """Name and note length rules."""
        issues = []

        name_field = NAME_FIELDS.get(entity_type)
        if name_field and name_field in values:
            name = values[name_field]
            max_length = (
                self._settings.max_goal_name_length
                if entity_type == "savings_goal"
                else self._settings.max_name_length
            )
            if name is None or not name.strip():
                issues.append(ValidationIssue(
                    field=name_field,
                    issue_type="missing",
                    message="Name cannot be empty",
                    severity="error",
                    suggested_fix="Enter a name",
                ))
            elif len(name) > max_length:
                issues.append(ValidationIssue(
                    field=name_field,
                    issue_type="too_long",
                    message=f"Name cannot be longer than {max_length} characters",
                    severity="error",
                    suggested_fix=f"Shorten the name to {max_length} characters",
                ))

        note = values.get("note")
        if note and len(note) > self._settings.max_note_length:
            issues.append(ValidationIssue(
                field="note",
                issue_type="too_long",
                message=(
                    f"Note cannot be longer than "
                    f"{self._settings.max_note_length} characters"
                ),
                severity="error",
            ))

        return issues

    async def _check_references(
        self,
        entity_type: str,
        values: dict,
    ) -> list[ValidationIssue]:
        """Referenced accounts and categories must exist."""
        issues = []

        account_id = values.get("account_id")
        if account_id and self._accounts is not None:
            if await self._accounts.get(account_id) is None:
                issues.append(ValidationIssue(
                    field="account_id",
                    issue_type="unknown_reference",
                    message=f"Account {account_id} does not exist",
                    severity="error",
                    suggested_fix="Choose an existing account",
                ))

        category_id = values.get("category_id")
        if category_id and self._categories is not None:
            category = await self._categories.get(category_id)
            if category is None:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="unknown_reference",
                    message=f"Category {category_id} does not exist",
                    severity="error",
                    suggested_fix="Choose an existing category",
                ))
            elif (
                entity_type == "transaction"
                and values.get("type") is not None
                and category["type"] != _enum_value(values["type"])
            ):
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="type_mismatch",
                    message=(
                        f"Category {category['name']} is a {category['type']} "
                        f"category but the transaction is {_enum_value(values['type'])}"
                    ),
                    severity="warning",
                    suggested_fix="Pick a category of the same type",
                ))

        return issues

    async def _validate_semantic(
        self,
        entity_type: str,
        payload: BaseModel,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Only fields the caller set are checked, so a partial update never
        trips over fields it does not touch.

        Returns: (is_valid, list_of_issues)
        """
        values = payload.model_dump(exclude_unset=True)
        issues = self._check_text(entity_type, values)
        issues.extend(await self._check_references(entity_type, values))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    async def validate(
        self,
        entity_type: str,
        payload_cls: type[PayloadT],
        data: Any,
    ) -> tuple[Optional[PayloadT], ValidationResult]:
        """
        Run full two-stage validation pipeline.

        Args:
            entity_type: "transaction", "category", "account", "budget"
                         or "savings_goal"
            payload_cls: The *Create / *Update model to parse into
            data: A dict or an instance of payload_cls

        Returns:
            (parsed payload or None, ValidationResult with all issues found)
        """
        payload, schema_issues = self._validate_schema(payload_cls, data)
        schema_valid = payload is not None

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        semantic_issues: list[ValidationIssue] = []
        if schema_valid:
            semantic_valid, semantic_issues = await self._validate_semantic(
                entity_type, payload
            )

        result = ValidationResult(
            entity_type=entity_type,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=schema_issues + semantic_issues,
        )
        return payload, result

    async def ensure_valid(
        self,
        entity_type: str,
        payload_cls: type[PayloadT],
        data: Any,
    ) -> PayloadT:
        """
        Validate and return the parsed payload.

        Raises:
            ValidationError: If any error-level issue was found
        """
        payload, result = await self.validate(entity_type, payload_cls, data)

        if not result.is_valid:
            issue_dicts = [issue.model_dump() for issue in result.issues]
            if self._audit is not None:
                await self._audit.log_validation_failed(entity_type, issue_dicts)
            errors = [i.message for i in result.issues if i.severity == "error"]
            raise ValidationError(
                f"Invalid {entity_type}: " + "; ".join(errors),
                issues=result.issues,
            )

        return payload

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the UI shows next to the form.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)
