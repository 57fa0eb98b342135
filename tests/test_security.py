"""Tests for specguard.validators.security module."""

from __future__ import annotations

import json
from pathlib import Path

from specguard.validators.base import FindingsDetails, PresenceDetails, SqlInjectionDetails
from specguard.validators.security import SecurityValidator, is_env_file, is_requirements_file

SQL_CONCAT = 'const rows = db.query("SELECT * FROM users WHERE id = " + userId);\n'


class TestCleanProject:
    """Tests for a project with nothing to report."""

    def test_all_checks_pass(self, make_project) -> None:
        """Test every check passes on clean code."""
        root = make_project({"src/app.js": "const total = 1;\n"})

        report = SecurityValidator(root).validate()

        assert report.status == "PASS"
        assert report.summary.total == 10
        assert report.summary.passed == 10
        assert report.recommendations == ()
        assert report.stats["files_scanned"] == 1


class TestPatternChecks:
    """Tests for checks that FAIL on any hit."""

    def test_hardcoded_secret(self, make_project) -> None:
        """Test a literal API key fails with its location."""
        root = make_project({"src/config.js": 'const apiKey = "sk_live_1234567890";\n'})

        report = SecurityValidator(root).validate()
        check = report.check("Hardcoded Secrets")

        assert check is not None
        assert check.status == "FAIL"
        assert isinstance(check.details, FindingsDetails)
        (finding,) = check.details.violations
        assert finding.file == "src/config.js"
        assert finding.line == 1
        assert finding.severity == "high"
        assert report.status == "FAIL"
        assert "Move secrets to environment variables or a secret manager" in report.recommendations

    def test_environment_lookup_passes(self, make_project) -> None:
        """Test credentials read from the environment are not flagged."""
        root = make_project({"src/config.js": "const apiKey = process.env.API_KEY;\n"})

        check = SecurityValidator(root).validate().check("Hardcoded Secrets")

        assert check is not None
        assert check.status == "PASS"

    def test_sql_injection(self, make_project) -> None:
        """Test concatenated SQL fails."""
        root = make_project({"src/users.js": SQL_CONCAT})

        check = SecurityValidator(root).validate().check("SQL Injection Prevention")

        assert check is not None
        assert check.status == "FAIL"
        assert isinstance(check.details, SqlInjectionDetails)
        assert check.details.violation_count == 1

    def test_parameterized_sql_passes(self, make_project) -> None:
        """Test placeholder queries pass and are noted."""
        root = make_project(
            {"src/users.py": 'cursor.execute("SELECT * FROM users WHERE id = %s", (uid,))\n'}
        )

        check = SecurityValidator(root).validate().check("SQL Injection Prevention")

        assert check is not None
        assert check.status == "PASS"
        assert check.details.has_parameterized_queries is True

    def test_xss_and_eval(self, make_project) -> None:
        """Test innerHTML from a variable and eval both fail."""
        root = make_project({"src/view.js": "el.innerHTML = message;\neval(code);\n"})

        report = SecurityValidator(root).validate()

        assert report.check("XSS Prevention").status == "FAIL"
        assert report.check("Insecure Patterns").status == "FAIL"

    def test_test_files_excluded_in_directory_mode(self, make_project) -> None:
        """Test source pattern checks skip test files when scanning a tree."""
        root = make_project({"tests/users.test.js": SQL_CONCAT})

        check = SecurityValidator(root).validate().check("SQL Injection Prevention")

        assert check is not None
        assert check.status == "PASS"

    def test_validate_file_includes_test_files(self, make_project) -> None:
        """Test single-file mode analyzes the file it is given."""
        root = make_project({"tests/users.test.js": SQL_CONCAT})

        report = SecurityValidator(root).validate_file(root / "tests" / "users.test.js")

        assert report.check("SQL Injection Prevention").status == "FAIL"
        assert report.target == str(root / "tests" / "users.test.js")


class TestPresenceChecks:
    """Tests for checks that WARN when a safeguard is missing."""

    def test_unvalidated_route(self, make_project) -> None:
        """Test a route using req.body without validation or auth warns twice."""
        root = make_project(
            {"src/routes.js": 'app.post("/users", (req, res) => { save(req.body); });\n'}
        )

        report = SecurityValidator(root).validate()
        validation = report.check("Input Validation")
        auth = report.check("Authentication")

        assert validation is not None and auth is not None
        assert validation.status == "WARNING"
        assert isinstance(validation.details, PresenceDetails)
        assert validation.details.missing == ("src/routes.js",)
        assert auth.status == "WARNING"
        assert report.status == "WARNING"

    def test_validated_and_authenticated_route(self, make_project) -> None:
        """Test markers in the same file satisfy both checks."""
        content = (
            "const { body } = require('express-validator');\n"
            'router.post("/users", requireAuth, body("email").isEmail(), (req, res) => {\n'
            "  save(req.body);\n"
            "});\n"
        )
        root = make_project({"src/routes.js": content})

        report = SecurityValidator(root).validate()

        assert report.check("Input Validation").status == "PASS"
        assert report.check("Authentication").status == "PASS"
        assert "requireAuth" in report.check("Authentication").details.evidence

    def test_plain_http_url(self, make_project) -> None:
        """Test a remote http:// URL warns."""
        root = make_project({"src/client.py": 'BASE_URL = "http://api.example.com"\n'})

        check = SecurityValidator(root).validate().check("HTTPS/TLS")

        assert check is not None
        assert check.status == "WARNING"


class TestConfigAndEnvironment:
    """Tests for configuration, dependency and environment checks."""

    def test_yaml_config_secret(self, make_project) -> None:
        """Test a literal password in YAML config warns with its key path."""
        root = make_project({"config/app.yml": "database:\n  host: db\n  password: realpass123\n"})

        check = SecurityValidator(root).validate().check("Config Security")

        assert check is not None
        assert check.status == "WARNING"
        (finding,) = check.details.violations
        assert finding.text == "literal value for 'database.password'"
        assert finding.line == 3

    def test_config_secret_reported_once(self, make_project) -> None:
        """Test a secret in a JSON config file is only reported by Config Security."""
        root = make_project(
            {"config/settings.json": json.dumps({"api_key": "sk_live_1234567890"}, indent=2)}
        )

        report = SecurityValidator(root).validate()
        secrets = report.check("Hardcoded Secrets")
        config = report.check("Config Security")

        assert secrets is not None
        assert secrets.status == "PASS"
        assert config is not None
        assert config.status == "WARNING"
        assert len(config.details.violations) == 1

    def test_env_file_with_real_value(self, make_project) -> None:
        """Test a real-looking value in .env warns; placeholders do not."""
        root = make_project(
            {
                ".env": "API_KEY=sk_live_abc123\nDEBUG=true\n",
                ".env.example": "API_KEY=your_api_key\n",
            }
        )

        check = SecurityValidator(root).validate().check("Environment Security")

        assert check is not None
        assert check.status == "WARNING"
        assert [(f.file, f.line) for f in check.details.violations] == [(".env", 1)]

    def test_package_json_dependencies(self, make_project) -> None:
        """Test problematic packages and wildcard versions warn."""
        manifest = {"dependencies": {"lodash": "*", "express": "^4.18.0"}}
        root = make_project({"package.json": json.dumps(manifest, indent=2)})

        check = SecurityValidator(root).validate().check("Dependency Security")

        assert check is not None
        assert check.status == "WARNING"
        kinds = sorted(f.kind for f in check.details.violations)
        assert kinds == ["problematic-package", "wildcard-version"]

    def test_requirements_file(self, make_project) -> None:
        """Test requirements.txt entries are inspected."""
        root = make_project({"requirements.txt": "# deps\nrequests==2.31.0\npycrypto==2.6.1\n"})

        check = SecurityValidator(root).validate().check("Dependency Security")

        assert check is not None
        assert check.status == "WARNING"
        assert check.details.violations[0].line == 3

    def test_file_predicates(self) -> None:
        """Test .env and requirements file detection."""
        assert is_env_file(Path(".env"))
        assert is_env_file(Path(".env.production"))
        assert not is_env_file(Path("env.py"))
        assert is_requirements_file(Path("requirements-dev.txt"))
        assert not is_requirements_file(Path("README.txt"))
