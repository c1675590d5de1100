"""
Prompt templates shared by every provider
"""

import json
from typing import Dict, List

from ..core.models import ProjectPlan, ProjectStructure

SYSTEM_PROMPT = "You are an expert software architect and developer. Provide responses in JSON format only."
MARKDOWN_SYSTEM_PROMPT = "You are an expert software consultant. Provide responses in Markdown."
FIX_SYSTEM_PROMPT = "You are an expert TypeScript developer. Provide responses in JSON format only."

PLAN_SCHEMA = {
    "projectName": "string",
    "description": "string",
    "technologies": ["string"],
    "architecture": "string",
    "components": [
        {"name": "string", "description": "string", "responsibilities": ["string"]}
    ],
    "dataModels": [
        {"name": "string", "fields": [{"name": "string", "type": "string", "description": "string"}]}
    ],
}

STRUCTURE_SCHEMA = {
    "directories": ["string"],
    "files": [{"path": "string", "content": "string"}],
    "dependencies": {
        "dependencies": {"package-name": "version"},
        "devDependencies": {"package-name": "version"},
    },
}

FILES_SCHEMA = [{"path": "string", "content": "string"}]

DOCUMENTATION_SCHEMA = {
    "readme": "string",
    "additional": [{"path": "string", "content": "string"}],
}

ANALYSIS_SCHEMA = {
    "issues": ["string"],
    "suggestions": ["string"],
}

ENHANCEMENT_SECTIONS = [
    "Feature Enhancements",
    "Performance Improvements",
    "Security Enhancements",
    "UI/UX Improvements",
    "Advanced Features",
    "Next Steps",
]

OPERATION_PREFIXES = {
    "add": "Add new functionality while preserving existing code:",
    "update": "Update the following components while preserving the rest:",
    "fix": "Fix issues in the following components:",
    "enhance": "Enhance the following components:",
}


def _schema(schema) -> str:
    return json.dumps(schema, indent=2)


def _dump(data) -> str:
    return json.dumps(data, indent=2)


def plan_prompt(requirements: str) -> str:
    return f"""You are an expert software architect tasked with creating a production-ready project plan.

Based on the following requirements, create a detailed project plan:

{requirements}

Provide your response in JSON format with the following structure:
{_schema(PLAN_SCHEMA)}
"""


def structure_prompt(plan: ProjectPlan) -> str:
    update_section = ""
    if plan.update_prompt:
        update_section = f"\nUPDATE INSTRUCTIONS: {plan.update_prompt}\n"

    return f"""You are an expert software developer tasked with creating a production-ready project structure.

Based on the following project plan, create a detailed project structure with all necessary files and their content:

{_dump(plan.to_dict())}
{update_section}
Provide your response in JSON format with the following structure:
{_schema(STRUCTURE_SCHEMA)}

Include all necessary files, such as package.json, tsconfig.json, README.md, etc.
For the content of each file, provide the complete code, not just placeholders.
Follow best practices for the chosen technologies.
Use latest stable versions of all dependencies.
Include proper type definitions for TypeScript.
Implement robust error handling.
"""


def fix_errors_prompt(errors: List[str], structure: ProjectStructure) -> str:
    error_text = "\n".join(errors)
    return f"""You are an expert TypeScript developer tasked with fixing compilation errors in a project.

Here are the compilation errors:
{error_text}

Here is the current project structure:
{_dump(structure.to_dict())}

Analyze the errors and provide fixed versions of the files that need to be updated.

Provide your response in JSON format with the following structure:
{_schema(FILES_SCHEMA)}

Include only the files that need to be updated with their full content.
"""


def documentation_prompt(structure: ProjectStructure) -> str:
    return f"""You are an expert technical writer tasked with creating documentation for a project.

Based on the following project structure, create comprehensive documentation:

{_dump(structure.to_dict())}

Provide your response in JSON format with the following structure:
{_schema(DOCUMENTATION_SCHEMA)}

The readme should include:
- Project overview
- Installation instructions
- Usage examples
- Configuration options
- Development setup

Additional documentation should cover:
- API documentation
- Architecture overview
- Contributing guidelines
"""


def enhancements_prompt(structure: ProjectStructure) -> str:
    sections = "\n\n".join(f"## {section}\n- [Suggestion 1]\n- [Suggestion 2]" for section in ENHANCEMENT_SECTIONS)
    return f"""You are an expert software consultant tasked with suggesting enhancements for a project.

Based on the following project structure, suggest enhancements and improvements:

{_dump(structure.to_dict())}

Provide a comprehensive Markdown document with the following sections:

# Enhancement Suggestions

{sections}
"""


def scan_prompt(project_path: str, file_contents: Dict[str, str], max_chars: int = 1000) -> str:
    listing = "\n".join(f"- {name}" for name in file_contents)
    excerpts = []
    for name, content in file_contents.items():
        excerpt = content[:max_chars]
        if len(content) > max_chars:
            excerpt += "... (truncated)"
        excerpts.append(f"=== {name} ===\n{excerpt}")
    excerpt_text = "\n\n".join(excerpts)

    return f"""You are an expert code reviewer tasked with analyzing a project.

Here is the structure of the project at {project_path}:

{listing}

And here are the contents of the key files:

{excerpt_text}

Provide your analysis in JSON format with the following structure:
{_schema(ANALYSIS_SCHEMA)}

Issues should include:
- Code quality issues
- Potential bugs
- Security vulnerabilities
- Performance issues

Suggestions should include:
- Best practices
- Architectural improvements
- Code organization
- Testing strategies
"""


def enhance_prompt(prompt: str, operation: str) -> str:
    """Frame a prompt for an incremental operation (add, update, fix or enhance)"""
    prefix = OPERATION_PREFIXES.get(operation, "Modify the following:")
    return (
        f"{prefix}\n\n{prompt}\n\n"
        "IMPORTANT: Focus only on the required changes. Maintain compatibility with existing code."
    )
