from formbuilder.models.audit_event import AuditEvent
from formbuilder.models.form import Form
from formbuilder.models.form_response import FormResponse

__all__ = [ "AuditEvent", "Form", "FormResponse" ]
