# portfolio_admin/utils/template_renderer.py
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from portfolio_admin.access.component_gate import gate
from portfolio_admin.access.roles import Role

# 패키지 디렉터리를 기준으로 템플릿 경로를 찾습니다.
PACKAGE_ROOT = Path(__file__).resolve().parent.parent
TEMPLATE_DIR = str(PACKAGE_ROOT / 'templates')


class TemplateRenderer:
    """Jinja2 환경을 한 번만 만들고, 이름으로 템플릿을 렌더링합니다."""

    def __init__(self, template_dir: str = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html"]),
        )
        self.env.globals["gate"] = gate
        self.env.globals["Role"] = Role

    def render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(**context)

    def render_string(self, source: str, **context) -> str:
        return self.env.from_string(source).render(**context)
