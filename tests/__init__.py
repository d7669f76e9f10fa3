from typing import Any, Dict, Iterator, List, Optional, Tuple

import attr as attrs

from evalmodel import Link, NodeType, Schema, ValueType
from evalmodel.model import (
    CopyrightStatement,
    DependencyTreeNode,
    EvaluatedFinding,
    EvaluatedModel,
    EvaluatedOrtIssue,
    EvaluatedPackage,
    EvaluatedPackagePath,
    EvaluatedRuleViolation,
    EvaluatedScanResult,
    Identifier,
    IssueResolution,
    IssueResolutionReason,
    IssueStatistics,
    LicenseId,
    LicenseStatistics,
    PathExclude,
    PathExcludeReason,
    Provenance,
    RemoteArtifact,
    RuleViolationResolution,
    RuleViolationResolutionReason,
    ScannerDetails,
    ScopeExclude,
    ScopeExcludeReason,
    ScopeName,
    Severity,
    Statistics,
    VcsInfo,
)

# A small model for the engine tests: issues back-referencing packages.

@attrs.s(auto_attribs=True, eq=False)
class Package:
    name: str
    deps: List['Package'] = attrs.ib(factory=list, repr=False)
    issues: List['Issue'] = attrs.ib(factory=list, repr=False)

@attrs.s(auto_attribs=True, eq=False)
class Issue:
    message: str
    pkg: Optional[Package] = attrs.ib(default=None, repr=False)

@attrs.s(auto_attribs=True, frozen=True)
class Location:
    file: str
    line: int = 0

@attrs.s(auto_attribs=True, eq=False)
class Root:
    issues: List[Issue] = attrs.ib(factory=list)
    packages: List[Package] = attrs.ib(factory=list)
    extra: Any = None

def make_schema(order: Tuple[str, ...] = ('issues', 'packages'),
                reference: bool = True) -> Schema:
    return Schema(ValueType(Root),
        [NodeType(Package, 'packages', links={
            'deps': Link(Package, many=True),
            'issues': Link(Issue, many=True),
         }),
         NodeType(Issue, 'issues', links={
            'pkg': Link(Package, reference=reference, optional=True),
         })],
        [ValueType(Location)],
        order=order)

def make_evaluated_model() -> EvaluatedModel:
    """
    A small project with one dependency, one scan result,
    issues, a rule violation and a dependency tree.
    """
    copyright = CopyrightStatement('Copyright (c) 2020 The Authors')
    apache, mit = LicenseId('Apache-2.0'), LicenseId('MIT')
    compile_scope, test_scope = ScopeName('compile'), ScopeName('test')
    docs = PathExclude('docs/**', PathExcludeReason.DOCUMENTATION_OF, 'Documentation.')
    tests = ScopeExclude('test', ScopeExcludeReason.TEST_DEPENDENCY_OF)
    cant_fix = IssueResolution('timeout', IssueResolutionReason.SCANNER_ISSUE)
    acquired = RuleViolationResolution('copyleft', RuleViolationResolutionReason.LICENSE_ACQUIRED_EXCEPTION)

    project = EvaluatedPackage(id=Identifier('Maven', 'org.example', 'app', '1.0'),
                               is_project=True, definition_file_path='pom.xml',
                               declared_licenses=[apache], scopes=[compile_scope, test_scope],
                               levels={0}, path_excludes=[docs], scope_excludes=[tests])
    lib = EvaluatedPackage(id=Identifier.from_coordinates('Maven:org.example:lib:2.0'),
                           declared_licenses=[mit], detected_licenses=[mit], levels={2, 1},
                           vcs=VcsInfo('Git', 'https://example.org/lib.git', 'abc123'))

    scan = EvaluatedScanResult(
        provenance=Provenance(download_time='2020-01-01T00:00:00+00:00',
                              source_artifact=RemoteArtifact('https://example.org/lib.jar', '0a1b', 'SHA-1')),
        scanner=ScannerDetails('ScanCode', '3.2.1'),
        start_time='2020-01-01T00:00:00+00:00',
        end_time='2020-01-01T00:01:00+00:00',
        file_count=42)
    lib.scan_results.append(scan)
    lib.findings.append(EvaluatedFinding(type='LICENSE', license=mit, path='LICENSE',
                                         start_line=1, end_line=20, scan_result=scan))
    lib.findings.append(EvaluatedFinding(type='COPYRIGHT', copyright=copyright, path='docs/index.md',
                                         start_line=1, end_line=1, scan_result=scan,
                                         path_excludes=[docs]))

    path = EvaluatedPackagePath(pkg=lib, project=project, scope=compile_scope, path=[project])
    lib.paths.append(path)

    timeout = EvaluatedOrtIssue(timestamp='2020-01-01T00:01:00+00:00', type='SCANNER',
                                source='ScanCode', message='timeout', severity=Severity.WARNING,
                                resolutions=[cant_fix], pkg=lib, scan_result=scan)
    scan.issues.append(timeout)
    lib.issues.append(timeout)
    unresolved = EvaluatedOrtIssue(timestamp='2020-01-01T00:00:00+00:00', type='ANALYZER',
                                   source='Maven', message='cannot resolve', pkg=lib, path=path)

    violation = EvaluatedRuleViolation(rule='COPYLEFT_IN_SOURCE', pkg=lib, license=mit,
                                       license_source='DETECTED', severity=Severity.HINT,
                                       message='MIT found in the sources', resolutions=[acquired])

    tree = DependencyTreeNode(title='app', pkg=project, children=[
        DependencyTreeNode(title='compile', scope=compile_scope, children=[
            DependencyTreeNode(title='lib', pkg=lib)]),
        DependencyTreeNode(title='test', scope=test_scope, scope_excludes=[tests]),
    ])

    return EvaluatedModel(
        path_excludes=[docs],
        scope_excludes=[tests],
        copyrights=[copyright],
        licenses=[apache, mit],
        scopes=[compile_scope, test_scope],
        issue_resolutions=[cant_fix],
        issues=[timeout, unresolved],
        scan_results=[scan],
        packages=[project, lib],
        paths=[path],
        dependency_trees=[tree],
        rule_violation_resolutions=[acquired],
        rule_violations=[violation],
        statistics=Statistics(open_issues=IssueStatistics(errors=1, warnings=1),
                              licenses=LicenseStatistics(declared={'Apache-2.0': 1, 'MIT': 1})),
        repository_configuration='excludes:\n  paths: []\n',
        custom_data={'generator': 'tests'},
    )

def iter_references(document: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Yields all reference documents with their path: the mappings that only
    have an ``_id`` key, and optionally a ``type`` key.
    The canonical payloads, at the top level of the containers, are skipped.
    """
    def visit(node: Any, path: str) -> Iterator[Tuple[str, Dict[str, Any]]]:
        if isinstance(node, dict):
            if '_id' in node and set(node) <= {'_id', 'type'}:
                yield path, node
                return
            for k, v in node.items():
                yield from visit(v, f'{path}.{k}')
        elif isinstance(node, list):
            for i, v in enumerate(node):
                yield from visit(v, f'{path}[{i}]')

    for name, value in document.items():
        if isinstance(value, list):
            for i, element in enumerate(value):
                if isinstance(element, dict) and '_id' in element:
                    for k, v in element.items():
                        yield from visit(v, f'$.{name}[{i}].{k}')
                else:
                    yield from visit(element, f'$.{name}[{i}]')
        else:
            yield from visit(value, f'$.{name}')
