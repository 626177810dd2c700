"""
Keeps the business scenario summary in sync with the integration tests.

Fails when a scenario is added without a write-up, or when the write-up
mentions a scenario that no longer exists.
"""

import importlib.util
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
SCRIPT = PROJECT_ROOT / 'scripts' / 'validate_test_docs_sync.py'


def _load_validator():
    spec = importlib.util.spec_from_file_location('validate_test_docs_sync', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


class TestDocumentationSync:
    """Ensure the scenario write-up matches the scenario tests."""

    @pytest.fixture(scope='class')
    def validator(self):
        return _load_validator()

    def test_doc_files_exist(self, validator):
        assert validator.DEFAULT_TEST_FILE.exists()
        assert validator.DEFAULT_DOC_FILE.exists(), "docs/test_scenarios_business_summary.md is missing"

    def test_every_scenario_documented(self, validator):
        report = validator.compare(validator.DEFAULT_TEST_FILE, validator.DEFAULT_DOC_FILE)

        assert not report.missing_classes, f"Undocumented classes: {report.missing_classes}"
        assert not report.missing_methods, f"Undocumented methods: {report.missing_methods}"

    def test_no_stale_documentation(self, validator):
        report = validator.compare(validator.DEFAULT_TEST_FILE, validator.DEFAULT_DOC_FILE)

        assert not report.stale_classes, f"Documented classes no longer exist: {report.stale_classes}"
        assert not report.stale_methods, f"Documented methods no longer exist: {report.stale_methods}"

    def test_script_exit_code(self, validator):
        assert validator.main(['--strict']) == 0

    def test_detects_undocumented_scenario(self, validator, tmp_path):
        tests = tmp_path / 'test_scenarios.py'
        tests.write_text("class TestNew:\n    def test_added(self):\n        pass\n")
        doc = tmp_path / 'summary.md'
        doc.write_text("**Test Class**: `TestNew`\n")

        report = validator.compare(tests, doc)

        assert report.missing_methods == {'test_added'}
        assert validator.main(['--test-file', str(tests), '--doc-file', str(doc)]) == 1
