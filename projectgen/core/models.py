"""
Data model shared by the providers, the pipeline and the reconciler.

Every model converts to and from the camelCase dictionaries that travel
over the LLM channel. ``from_dict`` is deliberately forgiving: LLM output
is frequently incomplete, so missing or mistyped fields fall back to
empty values instead of raising.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    return [_as_str(item) for item in value if item is not None]


def _as_str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): _as_str(v) for k, v in value.items()}


@dataclass
class Component:
    name: str
    description: str = ""
    responsibilities: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Component":
        if not isinstance(data, dict):
            return cls(name=_as_str(data))
        return cls(
            name=_as_str(data.get("name")),
            description=_as_str(data.get("description")),
            responsibilities=_as_str_list(data.get("responsibilities")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "responsibilities": list(self.responsibilities),
        }


@dataclass
class DataField:
    name: str
    type: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "DataField":
        if not isinstance(data, dict):
            return cls(name=_as_str(data))
        return cls(
            name=_as_str(data.get("name")),
            type=_as_str(data.get("type")),
            description=_as_str(data.get("description")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "description": self.description}


@dataclass
class DataModel:
    name: str
    fields: List[DataField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "DataModel":
        if not isinstance(data, dict):
            return cls(name=_as_str(data))
        raw_fields = data.get("fields")
        return cls(
            name=_as_str(data.get("name")),
            fields=[DataField.from_dict(f) for f in raw_fields] if isinstance(raw_fields, list) else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}


@dataclass
class ProjectPlan:
    """Project plan produced by the planning stage"""
    project_name: str
    description: str = ""
    technologies: List[str] = field(default_factory=list)
    architecture: str = ""
    components: List[Component] = field(default_factory=list)
    data_models: List[DataModel] = field(default_factory=list)
    update_prompt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ProjectPlan":
        if not isinstance(data, dict):
            data = {}
        components = data.get("components")
        data_models = data.get("dataModels", data.get("data_models"))
        return cls(
            project_name=_as_str(data.get("projectName", data.get("project_name")), "generated-project"),
            description=_as_str(data.get("description")),
            technologies=_as_str_list(data.get("technologies")),
            architecture=_as_str(data.get("architecture")),
            components=[Component.from_dict(c) for c in components] if isinstance(components, list) else [],
            data_models=[DataModel.from_dict(m) for m in data_models] if isinstance(data_models, list) else [],
            update_prompt=data.get("updatePrompt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "projectName": self.project_name,
            "description": self.description,
            "technologies": list(self.technologies),
            "architecture": self.architecture,
            "components": [c.to_dict() for c in self.components],
            "dataModels": [m.to_dict() for m in self.data_models],
        }
        if self.update_prompt:
            data["updatePrompt"] = self.update_prompt
        return data


@dataclass
class ProjectFile:
    """A single file of a generated project"""
    path: str
    content: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ProjectFile"]:
        """Build a file from an LLM dictionary; returns None when no path is present"""
        if not isinstance(data, dict):
            return None
        path = None
        for key in ("path", "filename", "file", "name", "file_path"):
            if data.get(key):
                path = _as_str(data[key])
                break
        if not path:
            return None
        content = data.get("content", data.get("code", ""))
        if content is None:
            content = ""
        elif not isinstance(content, str):
            # Some models inline JSON files as objects
            content = json.dumps(content, indent=2)
        return cls(path=normalize_path(path), content=content)

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content}


def normalize_path(path: str) -> str:
    """Normalize a project-relative path (forward slashes, no leading ./ or /)"""
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")
    while "//" in path:
        path = path.replace("//", "/")
    return path


def coerce_file_list(value: Any) -> List[ProjectFile]:
    """Turn a recovered value into a list of files with unique paths (last one wins)"""
    if isinstance(value, dict):
        if isinstance(value.get("files"), list):
            value = value["files"]
        else:
            value = [value]
    if not isinstance(value, list):
        return []

    by_path: Dict[str, ProjectFile] = {}
    for item in value:
        project_file = ProjectFile.from_dict(item)
        if project_file is None:
            continue
        by_path.pop(project_file.path, None)
        by_path[project_file.path] = project_file
    return list(by_path.values())


@dataclass
class Dependencies:
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Dependencies":
        if not isinstance(data, dict):
            return cls()
        return cls(
            dependencies=_as_str_map(data.get("dependencies")),
            dev_dependencies=_as_str_map(data.get("devDependencies", data.get("dev_dependencies"))),
        )

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            "dependencies": dict(self.dependencies),
            "devDependencies": dict(self.dev_dependencies),
        }

    def is_empty(self) -> bool:
        return not self.dependencies and not self.dev_dependencies


@dataclass
class ProjectStructure:
    """Directories, files and declared dependencies of a project.

    ``directories`` has set semantics but keeps first-seen order so logs and
    writes stay deterministic. File paths are unique.
    """
    directories: List[str] = field(default_factory=list)
    files: List[ProjectFile] = field(default_factory=list)
    dependencies: Dependencies = field(default_factory=Dependencies)

    @classmethod
    def from_dict(cls, data: Any) -> "ProjectStructure":
        if not isinstance(data, dict):
            data = {}
        directories = []
        for directory in _as_str_list(data.get("directories")):
            directory = normalize_path(directory).rstrip("/")
            if directory and directory not in directories:
                directories.append(directory)
        raw_files = data.get("files")
        return cls(
            directories=directories,
            files=coerce_file_list(raw_files) if isinstance(raw_files, list) else [],
            dependencies=Dependencies.from_dict(data.get("dependencies")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directories": list(self.directories),
            "files": [f.to_dict() for f in self.files],
            "dependencies": self.dependencies.to_dict(),
        }

    @property
    def file_paths(self) -> List[str]:
        return [f.path for f in self.files]

    def get_file(self, path: str) -> Optional[ProjectFile]:
        path = normalize_path(path)
        for project_file in self.files:
            if project_file.path == path:
                return project_file
        return None

    def upsert_file(self, project_file: ProjectFile) -> None:
        """Replace the file with the same path in place, or append it"""
        for index, existing in enumerate(self.files):
            if existing.path == project_file.path:
                self.files[index] = project_file
                return
        self.files.append(project_file)

    def is_empty(self) -> bool:
        return not self.directories and not self.files and self.dependencies.is_empty()


@dataclass
class Documentation:
    readme: str = ""
    additional: List[ProjectFile] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Documentation":
        if not isinstance(data, dict):
            data = {}
        additional = data.get("additional")
        return cls(
            readme=_as_str(data.get("readme")),
            additional=coerce_file_list(additional) if isinstance(additional, list) else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"readme": self.readme, "additional": [f.to_dict() for f in self.additional]}


@dataclass
class ProjectAnalysis:
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ProjectAnalysis":
        if not isinstance(data, dict):
            data = {}
        return cls(
            issues=_as_str_list(data.get("issues")),
            suggestions=_as_str_list(data.get("suggestions")),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {"issues": list(self.issues), "suggestions": list(self.suggestions)}


@dataclass
class CompilationResult:
    """Result of one compile attempt"""
    success: bool
    errors: List[str] = field(default_factory=list)
    output: Optional[str] = None
    execution_time: float = 0.0


class ChangeType(Enum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass
class FileChange:
    path: str
    type: ChangeType
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"path": self.path, "type": self.type.value}
        if self.content is not None:
            data["content"] = self.content
        return data
