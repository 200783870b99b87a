"""Jinja2 rendering of the account lifecycle emails."""

from __future__ import annotations

import os
from dataclasses import dataclass

from jinja2 import Environment, FileSystemLoader, select_autoescape

_DEFAULT_TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str


class EmailTemplates:
    def __init__(
        self,
        app_name: str = "BRICOLA",
        app_url: str = "https://bricola.fr",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
        reset_ttl_minutes: int = 15,
    ) -> None:
        self._app_name = app_name
        self._app_url = app_url
        self._reset_ttl_minutes = reset_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _render(self, name: str, **context) -> str:
        template = self._jinja.get_template(name)
        return template.render(app_name=self._app_name, app_url=self._app_url, **context)

    def verification(self, code: str) -> RenderedEmail:
        return RenderedEmail(
            subject=f"Verify your email - {self._app_name}",
            html_body=self._render("verification.html", code=code),
            text_body=(
                f"Vérification de votre adresse email - {self._app_name}\n\n"
                f"Votre code de vérification : {code}\n\n"
                f"Ce code ne peut être utilisé qu'une seule fois."
            ),
        )

    def email_change(self, code: str, new_email: str) -> RenderedEmail:
        return RenderedEmail(
            subject=f"Confirm your new email address - {self._app_name}",
            html_body=self._render("email_change.html", code=code, new_email=new_email),
            text_body=(
                f"Confirmation de votre nouvelle adresse email - {self._app_name}\n\n"
                f"Adresse : {new_email}\n"
                f"Votre code de vérification : {code}"
            ),
        )

    def password_reset(self, code: str) -> RenderedEmail:
        return RenderedEmail(
            subject=f"Reset your password - {self._app_name}",
            html_body=self._render(
                "password_reset.html", code=code, ttl_minutes=self._reset_ttl_minutes
            ),
            text_body=(
                f"Réinitialisation de votre mot de passe - {self._app_name}\n\n"
                f"Votre code : {code}\n\n"
                f"Ce code expire dans {self._reset_ttl_minutes} minutes."
            ),
        )
