from importlib.resources import files
from pathlib import Path
from typing import List
import yaml
from .ir import GraphSnapshot

TEMPLATES = ("doubler", "diamond")


def _load_template_yaml(name: str) -> str:
    pkg = files('livegraph.templates')
    return (pkg / f"{name}.yaml").read_text()


def list_templates() -> List[str]:
    return list(TEMPLATES)


def generate_snapshot(template: str) -> GraphSnapshot:
    template = template.lower()
    if template not in TEMPLATES:
        raise ValueError(f"Unknown template '{template}'. Use one of: {', '.join(TEMPLATES)}")
    data = yaml.safe_load(_load_template_yaml(template))
    return GraphSnapshot.model_validate(data)


def load_snapshot(path: Path) -> GraphSnapshot:
    try:
        data = yaml.safe_load(Path(path).read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    return GraphSnapshot.model_validate(data or {})


def save_snapshot(snapshot: GraphSnapshot, path: Path):
    path.write_text(yaml.safe_dump(snapshot.model_dump(mode="json", by_alias=True), sort_keys=False))
