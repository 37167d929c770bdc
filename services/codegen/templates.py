"""
Jinja2 template for generated workflow modules.

The orchestrator body and the embedded helpers are produced by the
generator; this template only lays out the module around them.
"""

from jinja2 import BaseLoader, Environment

GENERATED_HEADER = "Generated by workflow-engine. Do not edit by hand."

MODULE_TEMPLATE = """\
{% for line in header %}
# {{ line }}
{% endfor %}

{% for module in stdlib_imports %}
import {{ module }}
{% endfor %}
{% if step_imports %}

{% for line in step_imports %}
{{ line }}
{% endfor %}
{% endif %}

logger = logging.getLogger(__name__)
{% for helper in helpers %}


{{ helper }}
{% endfor %}


{{ orchestrator }}
"""

environment = Environment(
    loader=BaseLoader(),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)

module_template = environment.from_string(MODULE_TEMPLATE)


def render_module(header, stdlib_imports, step_imports, helpers, orchestrator) -> str:
    return module_template.render(
        header=header,
        stdlib_imports=stdlib_imports,
        step_imports=step_imports,
        helpers=helpers,
        orchestrator=orchestrator,
    )
