"""Locale tables for user-visible onboarding text.

All wizard text lives in one table keyed by language; callers resolve a
:class:`Locale` once per render pass and read strings from it.
"""

from dataclasses import dataclass

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "es")
DEFAULT_LANGUAGE = "en"

_TEXTS: dict[str, dict[str, str]] = {
    "en": {
        # steps
        "step.language": "Language",
        "step.language.description": "Select your language",
        "step.access-code": "Access Code",
        "step.access-code.description": "Enter your access code",
        "step.documents": "Documents",
        "step.documents.description": "Upload your documents",
        "step.forms": "Forms",
        "step.forms.description": "Complete required forms",
        "step.signature": "Signature",
        "step.signature.description": "Digital signature",
        "step.complete": "Complete",
        "step.complete.description": "Onboarding complete",
        # session
        "session.warning": "Your session is about to expire due to inactivity.",
        "session.timeout": "Your session has timed out. Please start again.",
        "session.resumed": "Session restored. Continuing from where you left off.",
        "session.new": "Starting new onboarding session.",
        "session.extended": "Session extended. You may continue.",
        "access_code.invalid": "Invalid token. Please try again.",
        "access_code.length": "The access code must be {length} characters.",
        # documents
        "documents.too_many": "You can only upload a maximum of {limit} documents",
        "documents.too_large": "File exceeds the {limit_mb} MB limit",
        "documents.bad_type": "Unsupported file type: {content_type}",
        "documents.bad_document_type": "Unsupported document type: {document_type}",
        "documents.pending": "Please wait until all documents have been processed.",
        "documents.failed": "Processing failed",
        # forms
        "forms.i9.title": "Form I-9: Employment Eligibility Verification",
        "forms.w4.title": "Form W-4: Employee's Withholding Certificate",
        "forms.incomplete": "Please fix the errors highlighted in red",
        "validation.required": "This field is required",
        "validation.invalid_format": "Invalid format",
        "validation.identifier": "Format: XXX-XX-XXXX",
        "validation.date": "Format: MM/DD/YYYY",
        "validation.postal_code": "Format: XXXXX or XXXXX-XXXX",
        "validation.email": "Invalid email address",
        "validation.phone": "Invalid phone number",
        "validation.state_code": "Use a two-letter state code",
        "validation.choice": "Select one of the listed options",
        "validation.non_negative": "Enter a number zero or greater",
        # signatures
        "signature.i9.title": "I-9 Form Employee Signature",
        "signature.w4.title": "W-4 Form Employee Signature",
        "signature.i9.attestation": (
            "I attest, under penalty of perjury, that I am authorized to work in "
            "the United States and that the information I have provided is true "
            "and complete."
        ),
        "signature.w4.attestation": (
            "Under penalties of perjury, I declare that this certificate, to the "
            "best of my knowledge and belief, is true, correct, and complete."
        ),
        "signature.required": "Signature is required",
        "signature.pending": "Please sign every form before continuing.",
        # submission
        "submission.accuracy": (
            "I certify that all information provided is accurate and complete "
            "to the best of my knowledge."
        ),
        "submission.completeness": (
            "I have reviewed all forms and understand that incomplete "
            "information may delay my onboarding."
        ),
        "submission.authorization": (
            "I authorize my employer to verify the information provided and "
            "process these forms."
        ),
        "submission.penalties": (
            "I understand that providing false information may result in "
            "penalties under federal law."
        ),
        "submission.confirmations_required": (
            "All confirmations must be checked before submission."
        ),
        "submission.not_ready": "Every form must be completed and signed before submission.",
        "submission.error": (
            "There was an error submitting your forms. Please try again."
        ),
        "submission.success": "Your forms have been successfully submitted for review.",
    },
    "es": {
        "step.language": "Idioma",
        "step.language.description": "Seleccione su idioma",
        "step.access-code": "Código de Acceso",
        "step.access-code.description": "Ingrese su código de acceso",
        "step.documents": "Documentos",
        "step.documents.description": "Suba sus documentos",
        "step.forms": "Formularios",
        "step.forms.description": "Complete los formularios requeridos",
        "step.signature": "Firma",
        "step.signature.description": "Firma digital",
        "step.complete": "Completo",
        "step.complete.description": "Incorporación completa",
        "session.warning": "Su sesión está a punto de expirar debido a inactividad.",
        "session.timeout": "Su sesión ha expirado. Por favor comience de nuevo.",
        "session.resumed": "Sesión restaurada. Continuando desde donde lo dejó.",
        "session.new": "Iniciando nueva sesión de incorporación.",
        "session.extended": "Sesión extendida. Puede continuar.",
        "access_code.invalid": "Token inválido. Por favor intente de nuevo.",
        "access_code.length": "El código de acceso debe tener {length} caracteres.",
        "documents.too_many": "Solo puede subir un máximo de {limit} documentos",
        "documents.too_large": "El archivo excede el límite de {limit_mb} MB",
        "documents.bad_type": "Tipo de archivo no soportado: {content_type}",
        "documents.bad_document_type": "Tipo de documento no soportado: {document_type}",
        "documents.pending": "Espere hasta que se procesen todos los documentos.",
        "documents.failed": "Procesamiento falló",
        "forms.i9.title": "Formulario I-9: Verificación de Elegibilidad de Empleo",
        "forms.w4.title": "Formulario W-4: Certificado de Retenciones del Empleado",
        "forms.incomplete": "Por favor corrija los errores resaltados en rojo",
        "validation.required": "Este campo es requerido",
        "validation.invalid_format": "Formato inválido",
        "validation.identifier": "Formato: XXX-XX-XXXX",
        "validation.date": "Formato: MM/DD/AAAA",
        "validation.postal_code": "Formato: XXXXX o XXXXX-XXXX",
        "validation.email": "Correo electrónico inválido",
        "validation.phone": "Número de teléfono inválido",
        "validation.state_code": "Use un código de estado de dos letras",
        "validation.choice": "Seleccione una de las opciones",
        "validation.non_negative": "Ingrese un número mayor o igual a cero",
        "signature.i9.title": "Firma del Empleado Formulario I-9",
        "signature.w4.title": "Firma del Empleado Formulario W-4",
        "signature.i9.attestation": (
            "Certifico, bajo pena de perjurio, que estoy autorizado para trabajar "
            "en los Estados Unidos y que la información que he proporcionado es "
            "verdadera y completa."
        ),
        "signature.w4.attestation": (
            "Bajo pena de perjurio, declaro que este certificado, según mi mejor "
            "conocimiento y creencia, es verdadero, correcto y completo."
        ),
        "signature.required": "Se requiere firma",
        "signature.pending": "Por favor firme todos los formularios antes de continuar.",
        "submission.accuracy": (
            "Certifico que toda la información proporcionada es precisa y "
            "completa según mi leal saber y entender."
        ),
        "submission.completeness": (
            "He revisado todos los formularios y entiendo que la información "
            "incompleta puede retrasar mi incorporación."
        ),
        "submission.authorization": (
            "Autorizo a mi empleador a verificar la información proporcionada y "
            "procesar estos formularios."
        ),
        "submission.penalties": (
            "Entiendo que proporcionar información falsa puede resultar en "
            "sanciones según la ley federal."
        ),
        "submission.confirmations_required": (
            "Todas las confirmaciones deben ser marcadas antes del envío."
        ),
        "submission.not_ready": (
            "Todos los formularios deben estar completos y firmados antes del envío."
        ),
        "submission.error": (
            "Hubo un error al enviar sus formularios. Por favor intente de nuevo."
        ),
        "submission.success": "Sus formularios han sido enviados exitosamente para revisión.",
    },
}


@dataclass(frozen=True)
class Locale:
    """Resolved text table for a single language."""

    language: str
    texts: dict[str, str]

    def text(self, key: str, **kwargs: object) -> str:
        """Look up a string, falling back to English and then to the key."""
        template = self.texts.get(key) or _TEXTS[DEFAULT_LANGUAGE].get(key, key)
        return template.format(**kwargs) if kwargs else template


def normalize_language(language: str | None) -> str:
    """Reduce a language tag such as ``es-MX`` to a supported code."""
    if not language:
        return DEFAULT_LANGUAGE
    code = language.split("-")[0].split("_")[0].lower()
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def resolve_locale(language: str | None) -> Locale:
    """Resolve the text table for a language.

    Args:
        language: Language code or tag; unsupported values fall back to English.

    Returns:
        Locale bound to the resolved language.
    """
    code = normalize_language(language)
    return Locale(language=code, texts=_TEXTS[code])
