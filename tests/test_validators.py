"""Tests for form field validators."""

from intake.forms.validators import FieldValidator, ValidationResult


class TestValidationResult:
    def test_creation(self) -> None:
        result = ValidationResult("ssnNumber", False, "bad", "identifier")
        assert result.field_name == "ssnNumber"
        assert result.is_valid is False
        assert result.rule_name == "identifier"


class TestFieldValidator:
    """Tests for the individual rule checks."""

    def setup_method(self) -> None:
        self.validator = FieldValidator()

    def test_required(self) -> None:
        result = self.validator.check("firstName", "  ", [], required=True)
        assert result is not None
        assert result.rule_name == "required"
        assert result.message == "This field is required"

    def test_blank_optional_is_valid(self) -> None:
        assert self.validator.check("email", "", [{"type": "email"}]) is None

    def test_identifier(self) -> None:
        rules = [{"type": "identifier"}]
        assert self.validator.check("ssn", "123-45-6789", rules) is None
        assert self.validator.check("ssn", "123456789", rules) is None
        result = self.validator.check("ssn", "12-345-6789", rules)
        assert result.rule_name == "identifier"
        assert result.message == "Format: XXX-XX-XXXX"

    def test_date(self) -> None:
        rules = [{"type": "date"}]
        assert self.validator.check("dob", "01/15/1990", rules) is None
        assert self.validator.check("dob", "1990-01-15", rules).rule_name == "date"
        assert self.validator.check("dob", "02/30/1990", rules).rule_name == "date"

    def test_postal_code(self) -> None:
        rules = [{"type": "postal_code"}]
        assert self.validator.check("zip", "90210", rules) is None
        assert self.validator.check("zip", "90210-1234", rules) is None
        assert self.validator.check("zip", "9021", rules) is not None

    def test_email_and_phone(self) -> None:
        assert self.validator.check("email", "a@b.co", [{"type": "email"}]) is None
        assert self.validator.check("email", "a@b", [{"type": "email"}]) is not None
        assert self.validator.check("phone", "(555) 123-4567", [{"type": "phone"}]) is None
        assert self.validator.check("phone", "555-1234", [{"type": "phone"}]) is not None

    def test_state_code(self) -> None:
        rules = [{"type": "state_code"}]
        assert self.validator.check("state", "ca", rules) is None
        assert self.validator.check("state", "ZZ", rules) is not None

    def test_choice(self) -> None:
        rules = [{"type": "choice", "options": ["single", "head_of_household"]}]
        assert self.validator.check("filingStatus", "single", rules) is None
        assert self.validator.check("filingStatus", "married", rules).rule_name == "choice"

    def test_non_negative(self) -> None:
        rules = [{"type": "non_negative"}]
        assert self.validator.check("otherIncome", "0", rules) is None
        assert self.validator.check("otherIncome", "$1,200.50", rules) is None
        assert self.validator.check("otherIncome", 3, rules) is None
        assert self.validator.check("otherIncome", "-5", rules) is not None
        assert self.validator.check("otherIncome", "lots", rules) is not None

    def test_regex(self) -> None:
        rules = [{"type": "regex", "pattern": r"^[A-Za-z]$"}]
        assert self.validator.check("middleInitial", "M", rules) is None
        assert self.validator.check("middleInitial", "MM", rules).rule_name == "regex"

    def test_unknown_rule_ignored(self) -> None:
        assert self.validator.check("x", "value", [{"type": "mystery"}]) is None

    def test_spanish_messages(self) -> None:
        validator = FieldValidator("es")
        result = validator.check("firstName", "", [], required=True)
        assert result.message == "Este campo es requerido"
