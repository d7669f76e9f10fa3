"""
The evaluated model: the outcome of applying excludes and resolutions to an analysis result.

The model is a cyclic object graph: issues reference their package, packages
reference their paths, issues and scan results, paths reference packages, and so on.
It is exported with `EVALUATED_MODEL_SCHEMA`: all objects for which the model has
a container, like `EvaluatedModel.issues` or `EvaluatedModel.packages`, are
serialized only once, in those containers. All other occurrences are replaced
by ``{"_id": <int>}`` references, where the integer is the index of the
object in its container.

Important notes for working with this model:

- Classes use identity comparison (``eq=False``): two equal but distinct
  instances are different nodes of the graph.
- The containers are visited in the order of `CONTAINER_ORDER`, the first
  site that reaches a node serializes its payload. Back-references, like
  `EvaluatedOrtIssue.pkg`, are declared as reference-only links in the schema,
  so they never claim a node before its own container does.
"""
from __future__ import annotations

import datetime
import enum
import re
from typing import IO, Any, Dict, List, Optional, Set

import attr as attrs

from ._lib.exporter import Exporter
from ._lib.loader import load, loads
from ._lib.schema import Link, NodeType, Schema, ValueType

__all__ = (
    "Severity",
    "EvaluatedOrtIssueType",
    "EvaluatedFindingType",
    "PathExcludeReason",
    "ScopeExcludeReason",
    "IssueResolutionReason",
    "RuleViolationResolutionReason",
    "Identifier",
    "VcsInfo",
    "RemoteArtifact",
    "Provenance",
    "ScannerDetails",
    "PathExclude",
    "ScopeExclude",
    "CopyrightStatement",
    "LicenseId",
    "ScopeName",
    "IssueResolution",
    "RuleViolationResolution",
    "EvaluatedOrtIssue",
    "EvaluatedScanResult",
    "EvaluatedFinding",
    "EvaluatedPackage",
    "EvaluatedPackagePath",
    "EvaluatedRuleViolation",
    "DependencyTreeNode",
    "IssueStatistics",
    "DependencyTreeStatistics",
    "LicenseStatistics",
    "Statistics",
    "EvaluatedModel",
    "CONTAINER_ORDER",
    "INT_ID_TYPES",
    "EVALUATED_MODEL_SCHEMA",
)

_FRACTION = re.compile(r'\.(\d+)')

def _datetime(value: Any) -> Any:
    """
    Parse ISO 8601 timestamps as written by Java serializers,
    with a ``Z`` suffix and up to nanoseconds.

    >>> _datetime('2020-01-01T00:00:00.123456789Z')
    datetime.datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ('Z', 'z'):
            text = text[:-1] + '+00:00'
        # microseconds, padded to the 6 digits fromisoformat() requires before python 3.11
        text = _FRACTION.sub(lambda m: '.' + (m.group(1) + '000000')[:6], text, count=1)
        return datetime.datetime.fromisoformat(text)
    return value

### Enumerations

class Severity(enum.Enum):
    ERROR = 'ERROR'
    WARNING = 'WARNING'
    HINT = 'HINT'

class EvaluatedOrtIssueType(enum.Enum):
    ANALYZER = 'ANALYZER'
    SCANNER = 'SCANNER'

class EvaluatedFindingType(enum.Enum):
    LICENSE = 'LICENSE'
    COPYRIGHT = 'COPYRIGHT'

class PathExcludeReason(enum.Enum):
    BUILD_TOOL_OF = 'BUILD_TOOL_OF'
    DATA_FILE_OF = 'DATA_FILE_OF'
    DOCUMENTATION_OF = 'DOCUMENTATION_OF'
    EXAMPLE_OF = 'EXAMPLE_OF'
    OPTIONAL_COMPONENT_OF = 'OPTIONAL_COMPONENT_OF'
    OTHER = 'OTHER'
    PROVIDED_BY = 'PROVIDED_BY'
    TEST_OF = 'TEST_OF'
    TEST_TOOL_OF = 'TEST_TOOL_OF'

class ScopeExcludeReason(enum.Enum):
    BUILD_DEPENDENCY_OF = 'BUILD_DEPENDENCY_OF'
    DEV_DEPENDENCY_OF = 'DEV_DEPENDENCY_OF'
    DOCUMENTATION_DEPENDENCY_OF = 'DOCUMENTATION_DEPENDENCY_OF'
    PROVIDED_DEPENDENCY_OF = 'PROVIDED_DEPENDENCY_OF'
    TEST_DEPENDENCY_OF = 'TEST_DEPENDENCY_OF'
    RUNTIME_DEPENDENCY_OF = 'RUNTIME_DEPENDENCY_OF'

class IssueResolutionReason(enum.Enum):
    BUILD_TOOL_ISSUE = 'BUILD_TOOL_ISSUE'
    CANT_FIX_ISSUE = 'CANT_FIX_ISSUE'
    SCANNER_ISSUE = 'SCANNER_ISSUE'

class RuleViolationResolutionReason(enum.Enum):
    CANT_FIX_EXCEPTION = 'CANT_FIX_EXCEPTION'
    DYNAMIC_LINKAGE_EXCEPTION = 'DYNAMIC_LINKAGE_EXCEPTION'
    EXAMPLE_OF_EXCEPTION = 'EXAMPLE_OF_EXCEPTION'
    LICENSE_ACQUIRED_EXCEPTION = 'LICENSE_ACQUIRED_EXCEPTION'
    NOT_MODIFIED_EXCEPTION = 'NOT_MODIFIED_EXCEPTION'
    PATENT_GRANT_EXCEPTION = 'PATENT_GRANT_EXCEPTION'

### Values

@attrs.s(auto_attribs=True, frozen=True)
class Identifier:
    """
    Identifies a package: ``type:namespace:name:version``.
    """
    type: str = ''
    namespace: str = ''
    name: str = ''
    version: str = ''

    @classmethod
    def from_coordinates(cls, coordinates: str) -> 'Identifier':
        """
        >>> Identifier.from_coordinates('Maven:org.example:lib:1.0')
        Identifier(type='Maven', namespace='org.example', name='lib', version='1.0')
        """
        parts = coordinates.split(':', 3)
        parts += [''] * (4 - len(parts))
        return cls(*parts)

    def to_coordinates(self) -> str:
        return ':'.join((self.type, self.namespace, self.name, self.version))

@attrs.s(auto_attribs=True, frozen=True)
class VcsInfo:
    type: str = ''
    url: str = ''
    revision: str = ''
    path: str = ''

@attrs.s(auto_attribs=True, frozen=True)
class RemoteArtifact:
    url: str = ''
    hash: str = ''
    hash_algorithm: str = ''

@attrs.s(auto_attribs=True, frozen=True)
class Provenance:
    """
    Where the scanned source code came from.
    """
    download_time: Optional[datetime.datetime] = attrs.ib(default=None, converter=_datetime)
    source_artifact: Optional[RemoteArtifact] = None
    vcs_info: Optional[VcsInfo] = None

@attrs.s(auto_attribs=True, frozen=True)
class ScannerDetails:
    name: str = ''
    version: str = ''
    configuration: str = ''

### Nodes

@attrs.s(auto_attribs=True, eq=False)
class PathExclude:
    pattern: str
    reason: PathExcludeReason = attrs.ib(converter=PathExcludeReason)
    comment: str = ''

@attrs.s(auto_attribs=True, eq=False)
class ScopeExclude:
    name: str
    reason: ScopeExcludeReason = attrs.ib(converter=ScopeExcludeReason)
    comment: str = ''

@attrs.s(auto_attribs=True, eq=False)
class CopyrightStatement:
    statement: str

@attrs.s(auto_attribs=True, eq=False)
class LicenseId:
    id: str

@attrs.s(auto_attribs=True, eq=False)
class ScopeName:
    name: str

@attrs.s(auto_attribs=True, eq=False)
class IssueResolution:
    message: str
    reason: IssueResolutionReason = attrs.ib(converter=IssueResolutionReason)
    comment: str = ''

@attrs.s(auto_attribs=True, eq=False)
class RuleViolationResolution:
    message: str
    reason: RuleViolationResolutionReason = attrs.ib(converter=RuleViolationResolutionReason)
    comment: str = ''

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedOrtIssue:
    """
    An issue with back-references to its source: a package, a scan result or a path.
    """
    timestamp: datetime.datetime = attrs.ib(converter=_datetime)
    type: EvaluatedOrtIssueType = attrs.ib(converter=EvaluatedOrtIssueType)
    source: str
    message: str
    severity: Severity = attrs.ib(default=Severity.ERROR, converter=Severity)
    resolutions: List[IssueResolution] = attrs.ib(factory=list)
    pkg: Optional['EvaluatedPackage'] = attrs.ib(default=None, repr=False)
    scan_result: Optional['EvaluatedScanResult'] = attrs.ib(default=None, repr=False)
    path: Optional['EvaluatedPackagePath'] = attrs.ib(default=None, repr=False)
    how_to_fix: str = ''

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedScanResult:
    provenance: Provenance = attrs.ib(factory=Provenance)
    scanner: ScannerDetails = attrs.ib(factory=ScannerDetails)
    start_time: datetime.datetime = attrs.ib(converter=_datetime)
    end_time: datetime.datetime = attrs.ib(converter=_datetime)
    file_count: int = 0
    package_verification_code: str = ''
    issues: List[EvaluatedOrtIssue] = attrs.ib(factory=list, repr=False)

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedFinding:
    """
    A license or copyright finding of a scan result.
    """
    type: EvaluatedFindingType = attrs.ib(converter=EvaluatedFindingType)
    license: Optional[LicenseId] = None
    copyright: Optional[CopyrightStatement] = None
    path: str
    start_line: int
    end_line: int
    scan_result: 'EvaluatedScanResult' = attrs.ib(repr=False)
    path_excludes: List[PathExclude] = attrs.ib(factory=list)

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedPackage:
    id: Identifier
    is_project: bool = False
    definition_file_path: str = ''
    purl: str = ''
    declared_licenses: List[LicenseId] = attrs.ib(factory=list)
    detected_licenses: List[LicenseId] = attrs.ib(factory=list)
    concluded_license: Optional[str] = None
    description: str = ''
    homepage_url: str = ''
    binary_artifact: RemoteArtifact = attrs.ib(factory=RemoteArtifact)
    source_artifact: RemoteArtifact = attrs.ib(factory=RemoteArtifact)
    vcs: VcsInfo = attrs.ib(factory=VcsInfo)
    vcs_processed: VcsInfo = attrs.ib(factory=VcsInfo)
    paths: List['EvaluatedPackagePath'] = attrs.ib(factory=list, repr=False)
    levels: Set[int] = attrs.ib(factory=set, converter=set)
    scopes: List[ScopeName] = attrs.ib(factory=list)
    scan_results: List[EvaluatedScanResult] = attrs.ib(factory=list, repr=False)
    findings: List[EvaluatedFinding] = attrs.ib(factory=list, repr=False)
    is_excluded: bool = False
    path_excludes: List[PathExclude] = attrs.ib(factory=list)
    scope_excludes: List[ScopeExclude] = attrs.ib(factory=list)
    issues: List[EvaluatedOrtIssue] = attrs.ib(factory=list, repr=False)

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedPackagePath:
    """
    A path from a project to a package, through the dependency tree of a scope.
    """
    pkg: EvaluatedPackage = attrs.ib(repr=False)
    project: EvaluatedPackage = attrs.ib(repr=False)
    scope: ScopeName
    path: List[EvaluatedPackage] = attrs.ib(factory=list, repr=False)

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedRuleViolation:
    rule: str
    pkg: EvaluatedPackage = attrs.ib(repr=False)
    license: Optional[LicenseId] = None
    license_source: Optional[str] = None
    severity: Severity = attrs.ib(default=Severity.ERROR, converter=Severity)
    message: str = ''
    how_to_fix: str = ''
    resolutions: List[RuleViolationResolution] = attrs.ib(factory=list)

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class DependencyTreeNode:
    title: str
    pkg: Optional[EvaluatedPackage] = attrs.ib(default=None, repr=False)
    scope: Optional[ScopeName] = None
    path_excludes: List[PathExclude] = attrs.ib(factory=list)
    scope_excludes: List[ScopeExclude] = attrs.ib(factory=list)
    children: List['DependencyTreeNode'] = attrs.ib(factory=list)

### Statistics

@attrs.s(auto_attribs=True, frozen=True)
class IssueStatistics:
    errors: int = 0
    warnings: int = 0
    hints: int = 0

@attrs.s(auto_attribs=True, frozen=True, kw_only=True)
class DependencyTreeStatistics:
    included_projects: int = 0
    excluded_projects: int = 0
    included_packages: int = 0
    excluded_packages: int = 0
    total_tree_depth: int = 0
    included_tree_depth: int = 0
    included_scopes: List[str] = attrs.ib(factory=list)
    excluded_scopes: List[str] = attrs.ib(factory=list)

@attrs.s(auto_attribs=True, frozen=True)
class LicenseStatistics:
    declared: Dict[str, int] = attrs.ib(factory=dict)
    detected: Dict[str, int] = attrs.ib(factory=dict)

@attrs.s(auto_attribs=True, frozen=True, kw_only=True)
class Statistics:
    open_issues: IssueStatistics = attrs.ib(factory=IssueStatistics)
    open_rule_violations: IssueStatistics = attrs.ib(factory=IssueStatistics)
    dependency_tree: DependencyTreeStatistics = attrs.ib(factory=DependencyTreeStatistics)
    licenses: LicenseStatistics = attrs.ib(factory=LicenseStatistics)

### The model

@attrs.s(auto_attribs=True, eq=False, kw_only=True)
class EvaluatedModel:
    """
    The evaluated model, see the module documentation.

    ``repository_configuration`` is kept as text, so consumers get it as written.
    """
    path_excludes: List[PathExclude] = attrs.ib(factory=list)
    scope_excludes: List[ScopeExclude] = attrs.ib(factory=list)
    copyrights: List[CopyrightStatement] = attrs.ib(factory=list)
    licenses: List[LicenseId] = attrs.ib(factory=list)
    scopes: List[ScopeName] = attrs.ib(factory=list)
    issue_resolutions: List[IssueResolution] = attrs.ib(factory=list)
    issues: List[EvaluatedOrtIssue] = attrs.ib(factory=list)
    scan_results: List[EvaluatedScanResult] = attrs.ib(factory=list)
    packages: List[EvaluatedPackage] = attrs.ib(factory=list)
    paths: List[EvaluatedPackagePath] = attrs.ib(factory=list)
    dependency_trees: List[DependencyTreeNode] = attrs.ib(factory=list)
    rule_violation_resolutions: List[RuleViolationResolution] = attrs.ib(factory=list)
    rule_violations: List[EvaluatedRuleViolation] = attrs.ib(factory=list)
    statistics: Statistics = attrs.ib(factory=Statistics)
    repository_configuration: str = ''
    custom_data: Dict[str, Any] = attrs.ib(factory=dict)

    def export(self, **kw: Any) -> Dict[str, Any]:
        """
        Build the normalized document of this model.

        :param kw: All parameters are passed to `Options` constructor.
        """
        return Exporter(EVALUATED_MODEL_SCHEMA, **kw).export(self)

    def to_json(self, stream: IO[str], **kw: Any) -> None:
        Exporter(EVALUATED_MODEL_SCHEMA, **kw).dump(self, stream, 'json')

    def to_yaml(self, stream: IO[str], **kw: Any) -> None:
        Exporter(EVALUATED_MODEL_SCHEMA, **kw).dump(self, stream, 'yaml')

    @classmethod
    def load(cls, document: Dict[str, Any]) -> 'EvaluatedModel':
        """
        Rebuild a model from its normalized document.
        """
        return load(document, EVALUATED_MODEL_SCHEMA)

    @classmethod
    def read(cls, stream: IO[str], format: str = 'json') -> 'EvaluatedModel':
        """
        Read a model from JSON or YAML text.
        """
        return loads(stream.read(), EVALUATED_MODEL_SCHEMA, format)

### The schema

CONTAINER_ORDER = (
    'path_excludes',
    'scope_excludes',
    'copyrights',
    'licenses',
    'scopes',
    'issue_resolutions',
    'issues',
    'scan_results',
    'packages',
    'paths',
    'rule_violation_resolutions',
    'rule_violations',
)
"""
The order in which the containers are visited.
Consumers rely on it: changing it changes the identities in the output.
"""

INT_ID_TYPES = (
    CopyrightStatement,
    EvaluatedOrtIssue,
    EvaluatedPackage,
    EvaluatedPackagePath,
    EvaluatedRuleViolation,
    EvaluatedScanResult,
    IssueResolution,
    LicenseId,
    PathExclude,
    RuleViolationResolution,
    ScopeName,
    ScopeExclude,
)
"""
The types that get integer identities.
"""

EVALUATED_MODEL_SCHEMA = Schema(
    ValueType(EvaluatedModel, links={
        'dependency_trees': Link(DependencyTreeNode, many=True),
        'statistics': Link(Statistics),
    }),
    [
        NodeType(PathExclude, 'path_excludes'),
        NodeType(ScopeExclude, 'scope_excludes'),
        NodeType(CopyrightStatement, 'copyrights'),
        NodeType(LicenseId, 'licenses'),
        NodeType(ScopeName, 'scopes'),
        NodeType(IssueResolution, 'issue_resolutions'),
        NodeType(EvaluatedOrtIssue, 'issues', links={
            'resolutions': Link(IssueResolution, many=True),
            'pkg': Link(EvaluatedPackage, reference=True, optional=True),
            'scan_result': Link(EvaluatedScanResult, reference=True, optional=True),
            'path': Link(EvaluatedPackagePath, reference=True, optional=True),
        }),
        NodeType(EvaluatedScanResult, 'scan_results', links={
            'provenance': Link(Provenance),
            'scanner': Link(ScannerDetails),
            'issues': Link(EvaluatedOrtIssue, many=True),
        }),
        NodeType(EvaluatedPackage, 'packages', links={
            'id': Link(Identifier),
            'declared_licenses': Link(LicenseId, many=True),
            'detected_licenses': Link(LicenseId, many=True),
            'binary_artifact': Link(RemoteArtifact),
            'source_artifact': Link(RemoteArtifact),
            'vcs': Link(VcsInfo),
            'vcs_processed': Link(VcsInfo),
            'paths': Link(EvaluatedPackagePath, many=True),
            'scopes': Link(ScopeName, many=True),
            'scan_results': Link(EvaluatedScanResult, many=True),
            'findings': Link(EvaluatedFinding, many=True),
            'path_excludes': Link(PathExclude, many=True),
            'scope_excludes': Link(ScopeExclude, many=True),
            'issues': Link(EvaluatedOrtIssue, many=True),
        }),
        NodeType(EvaluatedPackagePath, 'paths', links={
            'pkg': Link(EvaluatedPackage, reference=True),
            'project': Link(EvaluatedPackage, reference=True),
            'scope': Link(ScopeName),
            'path': Link(EvaluatedPackage, many=True, reference=True),
        }),
        NodeType(RuleViolationResolution, 'rule_violation_resolutions'),
        NodeType(EvaluatedRuleViolation, 'rule_violations', links={
            'pkg': Link(EvaluatedPackage, reference=True),
            'license': Link(LicenseId, optional=True),
            'resolutions': Link(RuleViolationResolution, many=True),
        }),
    ],
    [
        ValueType(Identifier),
        ValueType(VcsInfo),
        ValueType(RemoteArtifact),
        ValueType(Provenance, links={
            'source_artifact': Link(RemoteArtifact, optional=True),
            'vcs_info': Link(VcsInfo, optional=True),
        }),
        ValueType(ScannerDetails),
        ValueType(EvaluatedFinding, links={
            'license': Link(LicenseId, optional=True),
            'copyright': Link(CopyrightStatement, optional=True),
            'scan_result': Link(EvaluatedScanResult, reference=True),
            'path_excludes': Link(PathExclude, many=True),
        }),
        ValueType(DependencyTreeNode, links={
            'pkg': Link(EvaluatedPackage, optional=True),
            'scope': Link(ScopeName, optional=True),
            'path_excludes': Link(PathExclude, many=True),
            'scope_excludes': Link(ScopeExclude, many=True),
            'children': Link(DependencyTreeNode, many=True),
        }),
        ValueType(IssueStatistics),
        ValueType(DependencyTreeStatistics),
        ValueType(LicenseStatistics),
        ValueType(Statistics, links={
            'open_issues': Link(IssueStatistics),
            'open_rule_violations': Link(IssueStatistics),
            'dependency_tree': Link(DependencyTreeStatistics),
            'licenses': Link(LicenseStatistics),
        }),
    ],
    order=CONTAINER_ORDER,
)
