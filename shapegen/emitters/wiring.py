"""Render the endpoint lookup table and its runtime helper as ``index.ts``."""

from __future__ import annotations

from typing import List, Optional

from ..analyzers.naming import NamingResolver
from ..config import DocumentationConfig
from ..models import EndpointUnit, LookupTable
from .declarations import GENERATED_BANNER, property_key

INDEX_FILENAME = "index.ts"

_HELPER_TEMPLATE = """\
export type ResponseConfig = typeof RESPONSE_CONFIG;
export type EndpointKey = keyof ResponseConfig & string;

type ResponseConfigEntry = {{
  type: unknown;
  isArray: boolean;
  status: 'ok' | 'created';
}};

export interface InferredResponseOptions extends Omit<ApiResponseOptions, 'type' | 'status'> {{
  /** Override the detected array setting. */
  isArray?: boolean;
  /** Override the detected status. */
  status?: 'ok' | 'created';
}}

/**
 * Applies {created} or {ok} for a handler using the
 * generated entry of the given endpoint. Handlers without an entry are left
 * undecorated and a warning is printed.
 */
export function InferredAPIResponse(
  endpoint: EndpointKey,
  options: InferredResponseOptions = {{}},
): MethodDecorator {{
  return (target: object, propertyKey: string | symbol, descriptor: PropertyDescriptor) => {{
    const handler = String(propertyKey);
    const handlers = RESPONSE_CONFIG[endpoint] as unknown as Record<string, ResponseConfigEntry> | undefined;
    const entry = handlers ? handlers[handler] : undefined;
    if (!entry) {{
      console.warn(`No response config found for ${{String(endpoint)}}.${{handler}}`);
      return descriptor;
    }}

    const {{ isArray, status, description, ...rest }} = options;
    const decoratorOptions: ApiResponseOptions = {{
      ...rest,
      type: entry.type as ApiResponseOptions['type'],
      description: description ?? 'Success response',
    }};
    if (isArray ?? entry.isArray) {{
      (decoratorOptions as {{ isArray?: boolean }}).isArray = true;
    }}

    const decorator = (status ?? entry.status) === 'created' ? {created} : {ok};
    return decorator(decoratorOptions)(target, propertyKey, descriptor);
  }};
}}

export const InferredOkResponse = (endpoint: EndpointKey, options: InferredResponseOptions = {{}}) =>
  InferredAPIResponse(endpoint, {{ ...options, status: 'ok' }});

export const InferredCreatedResponse = (endpoint: EndpointKey, options: InferredResponseOptions = {{}}) =>
  InferredAPIResponse(endpoint, {{ ...options, status: 'created' }});"""


class WiringEmitter:
    """Builds the ``RESPONSE_CONFIG`` module from a :class:`LookupTable`."""

    def __init__(
        self,
        naming: Optional[NamingResolver] = None,
        documentation: Optional[DocumentationConfig] = None,
        responses_prefix: str = "./responses",
    ) -> None:
        self.naming = naming or NamingResolver()
        self.documentation = documentation or DocumentationConfig()
        self.responses_prefix = responses_prefix.rstrip("/")

    def emit(self, table: LookupTable) -> str:
        docs = self.documentation
        lines: List[str] = [
            GENERATED_BANNER,
            f"import {{ {docs.ok_decorator}, {docs.created_decorator}, ApiResponseOptions }} "
            f"from '{docs.module}';",
        ]
        for unit_name in self._referenced_units(table):
            declared = table.declared_units[unit_name]
            specifier = f"{self.responses_prefix}/{self.naming.module_specifier(unit_name)}"
            lines.append(f"import {{ {declared.lookup_name} }} from '{specifier}';")

        lines.append("")
        lines.append(self.emit_config(table))
        lines.append("")
        lines.append(_HELPER_TEMPLATE.format(ok=docs.ok_decorator, created=docs.created_decorator))

        bound = [self._bound_helper(key) for key, unit in table.endpoints.items() if unit.handlers]
        if bound:
            lines.append("")
            lines.extend(bound)
        return "\n".join(lines) + "\n"

    def emit_config(self, table: LookupTable) -> str:
        blocks = [
            self._endpoint_block(unit) for unit in table.endpoints.values() if unit.handlers
        ]
        if not blocks:
            return "export const RESPONSE_CONFIG = {} as const;"
        return "export const RESPONSE_CONFIG = {\n" + "\n".join(blocks) + "\n} as const;"

    @staticmethod
    def _endpoint_block(unit: EndpointUnit) -> str:
        entries: List[str] = []
        for handler, mapping in unit.handlers.items():
            entries.append(
                f"    {property_key(handler)}: {{\n"
                f"      type: {mapping.reference},\n"
                f"      isArray: {'true' if mapping.is_array else 'false'},\n"
                f"      status: '{mapping.status}',\n"
                "    },"
            )
        return f"  {property_key(unit.key)}: {{\n" + "\n".join(entries) + "\n  },"

    @staticmethod
    def _referenced_units(table: LookupTable) -> List[str]:
        names = {
            mapping.owning_unit
            for unit in table.endpoints.values()
            for mapping in unit.handlers.values()
            if mapping.owning_unit in table.declared_units
        }
        return sorted(names)

    @staticmethod
    def _bound_helper(key: str) -> str:
        return (
            f"export const {key}InferredResponse = (options: InferredResponseOptions = {{}}) =>\n"
            f"  InferredAPIResponse('{key}', options);"
        )


__all__ = ["INDEX_FILENAME", "WiringEmitter"]
