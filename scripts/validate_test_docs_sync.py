#!/usr/bin/env python3
"""
Check that docs/test_scenarios_business_summary.md documents every scenario
in tests/test_integration_scenarios.py, and nothing else.

Run: python scripts/validate_test_docs_sync.py [--test-file PATH] [--doc-file PATH]

Exits 1 when a scenario is undocumented. Stale documentation is reported as
a warning unless --strict is given.
"""

import argparse
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_TEST_FILE = PROJECT_ROOT / 'tests' / 'test_integration_scenarios.py'
DEFAULT_DOC_FILE = PROJECT_ROOT / 'docs' / 'test_scenarios_business_summary.md'

CLASS_PATTERN = re.compile(r'^class (Test\w+)')
METHOD_PATTERN = re.compile(r'^\s+def (test_\w+)')
DOC_CLASS_PATTERN = re.compile(r'\*\*Test Class\*\*:\s*`(Test\w+)`')
DOC_METHOD_PATTERN = re.compile(r'\*\*Test Method\*\*:\s*`(test_\w+)`')


def extract_test_classes_and_methods(test_file: Path) -> dict[str, list[str]]:
    """Map each scenario class to its test methods, in file order."""
    classes: dict[str, list[str]] = {}
    current_class = None

    for line in test_file.read_text().splitlines():
        class_match = CLASS_PATTERN.match(line)
        if class_match:
            current_class = class_match.group(1)
            classes[current_class] = []
        elif current_class:
            method_match = METHOD_PATTERN.match(line)
            if method_match:
                classes[current_class].append(method_match.group(1))

    return classes


def extract_documented_tests(doc_file: Path) -> tuple[set[str], set[str]]:
    """Class and method names referenced in the business summary."""
    content = doc_file.read_text()
    return set(DOC_CLASS_PATTERN.findall(content)), set(DOC_METHOD_PATTERN.findall(content))


@dataclass
class SyncReport:
    missing_classes: set[str] = field(default_factory=set)
    missing_methods: set[str] = field(default_factory=set)
    stale_classes: set[str] = field(default_factory=set)
    stale_methods: set[str] = field(default_factory=set)

    @property
    def in_sync(self) -> bool:
        return not (self.missing_classes or self.missing_methods or self.stale_classes or self.stale_methods)


def compare(test_file: Path, doc_file: Path) -> SyncReport:
    test_classes = extract_test_classes_and_methods(test_file)
    doc_classes, doc_methods = extract_documented_tests(doc_file)
    test_methods = {method for methods in test_classes.values() for method in methods}

    return SyncReport(
        missing_classes=set(test_classes) - doc_classes,
        missing_methods=test_methods - doc_methods,
        stale_classes=doc_classes - set(test_classes),
        stale_methods=doc_methods - test_methods,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--test-file', type=Path, default=DEFAULT_TEST_FILE)
    parser.add_argument('--doc-file', type=Path, default=DEFAULT_DOC_FILE)
    parser.add_argument('--strict', action='store_true', help='treat stale documentation as an error')
    args = parser.parse_args(argv)

    for path in (args.test_file, args.doc_file):
        if not path.exists():
            print(f"File not found: {path}")
            return 1

    report = compare(args.test_file, args.doc_file)

    print(f"Scenarios: {args.test_file.name}")
    print(f"Summary:   {args.doc_file.name}")

    for name in sorted(report.missing_classes | report.missing_methods):
        print(f"  UNDOCUMENTED  {name}")
    for name in sorted(report.stale_classes | report.stale_methods):
        print(f"  STALE         {name}")

    if report.in_sync:
        print("All scenarios documented.")
        return 0

    failed = report.missing_classes or report.missing_methods
    if args.strict:
        failed = failed or report.stale_classes or report.stale_methods
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
