from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError


class PDFValidationMixin:
    def clean_proposal_pdf(self):
        pdf = self.cleaned_data.get("proposal_pdf", False)
        if pdf:
            limit = settings.PORTAL_MAX_UPLOAD_BYTES
            if pdf.size > limit:
                raise forms.ValidationError(f"File size must be less than {limit // (1024 * 1024)} MB.")

            if not pdf.name.lower().endswith(".pdf"):
                raise forms.ValidationError("Only PDF files are allowed.")

            # browsers may omit the content type on some uploads
            if getattr(pdf, "content_type", None) and pdf.content_type != "application/pdf":
                raise forms.ValidationError("Invalid file type. Upload a valid PDF.")

        return pdf


def validate_phone(value):
    if not value.isdigit():
        raise ValidationError("Phone number must contain only digits.")
    if not 9 <= len(value) <= 15:
        raise ValidationError("Phone number must be between 9 and 15 digits.")
