# portfolio_admin/access/component_gate.py
from markupsafe import Markup

from .auth_context import AuthContext


def is_visible(context: AuthContext, require_admin: bool = False, require_manager: bool = False, permission: str = None) -> bool:
    """
    화면 조각을 보여줄지 판정합니다. 페이지 가드와 같은 표를 사용하되
    리다이렉트 없이 표시/숨김만 결정하며, 로딩 중에는 숨깁니다.
    """
    if context.is_loading or not context.is_authenticated:
        return False
    if require_admin and not context.is_admin:
        return False
    if require_manager and not context.is_manager_or_admin:
        return False
    if permission is not None and not context.has_permission(permission):
        return False
    return True


def gate(context: AuthContext, require_admin: bool = False, require_manager: bool = False,
         permission: str = None, fallback: str = "", caller=None):
    """
    템플릿의 call 블록에서 사용합니다.

        {% call gate(auth, require_admin=True) %}<button>Delete</button>{% endcall %}

    조건을 만족하면 블록 내용을, 아니면 fallback을 반환합니다.
    """
    if is_visible(context, require_admin=require_admin, require_manager=require_manager, permission=permission):
        return Markup(caller()) if caller is not None else Markup("")
    return Markup(fallback or "")
