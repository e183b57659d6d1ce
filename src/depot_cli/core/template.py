"""Locator template resolution.

Locators may reference build variables with ``{{name}}`` placeholders, e.g.
``https://artifacts.example.com/{{target}}/{{profile}}/libpriv-{{version}}.tar.gz``.
"""

import os
import re
from typing import Dict, Mapping, Optional

from ..errors import MalformedTemplate, MissingEnvironmentVariable, UnknownVariable
from ..models.depot_package import BuildContext, Substitution


_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_VARIABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def render(template: str, variables: Mapping[str, Substitution],
           environ: Optional[Mapping[str, str]] = None,
           package_name: Optional[str] = None) -> str:
    """Substitute every placeholder in a template.

    Args:
        template: Locator template
        variables: Variables available to the template, by name
        environ: Environment used for env-backed variables (defaults to os.environ)
        package_name: Package the template belongs to (for error reporting)

    Returns:
        str: The resolved string

    Raises:
        MalformedTemplate: On unbalanced braces or an invalid variable name
        UnknownVariable: If a placeholder names an undeclared variable
        MissingEnvironmentVariable: If an env-backed variable's source is unset
    """
    if environ is None:
        environ = os.environ

    parts = []
    position = 0
    for match in _PLACEHOLDER.finditer(template):
        literal = template[position:match.start()]
        _check_literal(template, literal, package_name)
        parts.append(literal)

        name = match.group(1).strip()
        if not _VARIABLE_NAME.match(name):
            raise MalformedTemplate(template, f"invalid variable name '{name}'", package_name)
        parts.append(_lookup(name, variables, environ, package_name))
        position = match.end()

    tail = template[position:]
    _check_literal(template, tail, package_name)
    parts.append(tail)
    return "".join(parts)


def _check_literal(template: str, literal: str, package_name: Optional[str]) -> None:
    if "{{" in literal:
        raise MalformedTemplate(template, "unclosed '{{'", package_name)
    if "}}" in literal:
        raise MalformedTemplate(template, "unmatched '}}'", package_name)


def _lookup(name: str, variables: Mapping[str, Substitution],
            environ: Mapping[str, str], package_name: Optional[str]) -> str:
    substitution = variables.get(name)
    if substitution is None:
        raise UnknownVariable(name, package_name)
    if not substitution.from_env:
        return substitution.value
    value = environ.get(substitution.value)
    if value is None:
        raise MissingEnvironmentVariable(substitution.value, package_name)
    return value


class TemplateResolver:
    """Resolves package locators against build built-ins and user substitutions."""

    def __init__(self, context: BuildContext,
                 substitutions: Optional[Mapping[str, Substitution]] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Initialize the resolver.

        Args:
            context: Build context supplying the built-in variables
            substitutions: User-declared variables; these replace built-ins of the same name
            environ: Environment for env-backed variables (defaults to os.environ)
        """
        self.context = context
        self.substitutions = dict(substitutions or {})
        self.environ = environ if environ is not None else os.environ

    def builtins(self, version: Optional[str] = None) -> Dict[str, Substitution]:
        """Built-in variables for the current build (and package version, if any)."""
        values = {
            "target": self.context.target,
            "profile": self.context.profile,
            "compiler_version": self.context.compiler_version,
            "rustc_short_version": self.context.compiler_version,
            "version": version,
        }
        return {
            name: Substitution(name=name, value=value)
            for name, value in values.items()
            if value is not None
        }

    def variables(self, version: Optional[str] = None) -> Dict[str, Substitution]:
        """All variables visible to a template, user declarations taking precedence."""
        variables = self.builtins(version)
        variables.update(self.substitutions)
        return variables

    def resolve(self, template: str, version: Optional[str] = None,
                package_name: Optional[str] = None) -> str:
        """Resolve a locator template for one package."""
        return render(template, self.variables(version), self.environ, package_name)
