from django import forms

from .models import Project, Role, User
from .validators import PDFValidationMixin, validate_phone


class PartialUpdateMixin:
    """For edit forms: only the fields the client actually sent count as changes."""

    def changes(self):
        return {name: value for name, value in self.cleaned_data.items() if name in self.data}


# ---------- Proposals ----------

class ProposalDraftForm(PartialUpdateMixin, forms.Form):
    proposal_id = forms.IntegerField(required=False)

    project_name = forms.CharField(max_length=200, required=False)
    background = forms.CharField(required=False)
    objectives = forms.CharField(required=False)
    market_review = forms.CharField(required=False)
    new_or_improved = forms.CharField(required=False)

    address = forms.CharField(max_length=255, required=False)
    end_of_studies = forms.DateField(required=False)

    co_student = forms.ModelChoiceField(queryset=User.objects.filter(role=Role.STUDENT), required=False)
    suggested_mentor = forms.ModelChoiceField(queryset=User.objects.filter(role=Role.MENTOR), required=False)
    attachment_id = forms.IntegerField(required=False)

    remove_attachment = forms.BooleanField(required=False)
    remove_co_student = forms.BooleanField(required=False)
    remove_suggested_mentor = forms.BooleanField(required=False)

    def changes(self):
        data = super().changes()
        data.pop("proposal_id", None)
        return data


class UploadForm(PDFValidationMixin, forms.Form):
    proposal_pdf = forms.FileField()


class ApproveForm(forms.Form):
    mentor_id = forms.IntegerField(required=False)


class RejectForm(forms.Form):
    reason = forms.CharField(max_length=2000)


# ---------- Meetings ----------

class MeetingProposeForm(forms.Form):
    project_id = forms.IntegerField()
    proposed_date = forms.DateTimeField()


class RescheduleForm(forms.Form):
    proposed_date = forms.DateTimeField()
    reason = forms.CharField(max_length=2000, required=False)


# ---------- Tasks ----------

class TaskCreateForm(forms.Form):
    meeting_id = forms.IntegerField()
    title = forms.CharField(max_length=200)
    description = forms.CharField(max_length=4000, required=False)
    due_date = forms.DateTimeField(required=False)


class TaskUpdateForm(PartialUpdateMixin, forms.Form):
    title = forms.CharField(max_length=200, required=False)
    description = forms.CharField(max_length=4000, required=False)
    due_date = forms.DateTimeField(required=False)


# ---------- Projects / people ----------

class ProjectStatusForm(forms.Form):
    status = forms.ChoiceField(choices=Project.Status.choices)


class MentorRequestForm(forms.Form):
    mentor_id = forms.IntegerField()


class ProfileForm(PartialUpdateMixin, forms.Form):
    full_name = forms.CharField(max_length=200, required=False)
    email = forms.EmailField(required=False)
    id_number = forms.CharField(max_length=20, required=False)
    phone_number = forms.CharField(max_length=20, required=False, validators=[validate_phone])
    avatar = forms.ImageField(required=False)

    def clean_id_number(self):
        value = self.cleaned_data.get("id_number", "")
        if value and not value.isdigit():
            raise forms.ValidationError("ID number must contain only digits.")
        return value

    def changes(self):
        data = super().changes()
        data.pop("avatar", None)
        return data


class RoleForm(forms.Form):
    role = forms.ChoiceField(choices=Role.choices)


class LoginForm(forms.Form):
    username = forms.CharField(max_length=150)
    password = forms.CharField(widget=forms.PasswordInput)
