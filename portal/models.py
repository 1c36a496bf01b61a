from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone
from PIL import Image


class Role(models.TextChoices):
    STUDENT = 'student', 'Student'
    MENTOR = 'mentor', 'Mentor'
    HOD = 'hod', 'Head of Department'


class User(AbstractUser):
    """Portal user. Students carry their project and mentor assignment."""
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.STUDENT, db_index=True)
    full_name = models.CharField(max_length=200, blank=True)
    id_number = models.CharField(max_length=20, unique=True, null=True, blank=True)
    email = models.EmailField(unique=True, null=True, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    avatar = models.ImageField(upload_to='avatars/', blank=True, null=True)

    project = models.ForeignKey(
        'Project', on_delete=models.SET_NULL, null=True, blank=True, related_name='members'
    )
    mentor = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='mentored_students',
        limit_choices_to={'role': Role.MENTOR},
    )

    def __str__(self):
        return self.full_name or self.username

    @property
    def display_name(self):
        return self.full_name or self.get_full_name() or self.username

    @property
    def is_student(self):
        return self.role == Role.STUDENT

    @property
    def is_mentor(self):
        return self.role == Role.MENTOR

    @property
    def is_hod(self):
        return self.role == Role.HOD

    @property
    def is_in_project(self):
        return self.project_id is not None

    def save(self, *args, **kwargs):
        # Blank values must not collide on the unique columns
        self.email = self.email or None
        self.id_number = self.id_number or None
        super().save(*args, **kwargs)
        update_fields = kwargs.get('update_fields')
        if not self.avatar or (update_fields is not None and 'avatar' not in update_fields):
            return
        img = Image.open(self.avatar.path)
        if img.height > 300 or img.width > 300:
            img.thumbnail((300, 300))
            img.save(self.avatar.path)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class File(TimeStampedModel):
    """An uploaded PDF, owned by its uploader."""
    original_name = models.CharField(max_length=255)
    upload = models.FileField(upload_to='proposals/')
    size = models.PositiveIntegerField(default=0)
    mime = models.CharField(max_length=100, default='application/pdf')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='files')
    proposal = models.ForeignKey(
        'Proposal', on_delete=models.SET_NULL, null=True, blank=True, related_name='files'
    )

    def __str__(self):
        return self.original_name


class Proposal(TimeStampedModel):
    class Status(models.TextChoices):
        DRAFT = 'Draft', 'Draft'
        PENDING = 'Pending', 'Pending'
        APPROVED = 'Approved', 'Approved'
        REJECTED = 'Rejected', 'Rejected'

    EDITABLE_STATUSES = (Status.DRAFT, Status.REJECTED)

    # Project basics
    project_name = models.CharField(max_length=200)
    background = models.TextField(blank=True)
    objectives = models.TextField(blank=True)
    market_review = models.TextField(blank=True)
    new_or_improved = models.TextField(blank=True)

    # Author and the identity snapshot taken on every save
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='authored_proposals')
    author_full_name = models.CharField(max_length=200, blank=True)
    author_id_number = models.CharField(max_length=20, blank=True)

    # Contact details for this proposal only
    address = models.CharField(max_length=255, blank=True)
    mobile_phone = models.CharField(max_length=20, blank=True)
    end_of_studies = models.DateField(null=True, blank=True)

    # Optional co-student, snapshotted at submission
    co_student = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='co_authored_proposals'
    )
    co_student_full_name = models.CharField(max_length=200, blank=True)
    co_student_id_number = models.CharField(max_length=20, blank=True)

    suggested_mentor = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='suggested_proposals'
    )
    attachment = models.ForeignKey(
        File, on_delete=models.SET_NULL, null=True, blank=True, related_name='attached_to'
    )

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT, db_index=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_proposals'
    )
    decision = models.CharField(max_length=10, blank=True)
    decision_reason = models.TextField(blank=True)

    # Conflict cleanup bookkeeping
    invalidated_by = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='invalidated_proposals'
    )
    invalidated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'author'], name='proposal_status_author_idx'),
            models.Index(fields=['status', 'co_student'], name='proposal_status_co_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['author'],
                condition=Q(status='Pending'),
                name='unique_pending_proposal_per_author',
            ),
            models.UniqueConstraint(
                fields=['co_student'],
                condition=Q(status='Pending') & Q(co_student__isnull=False),
                name='unique_pending_proposal_per_co_student',
            ),
        ]

    def __str__(self):
        return f"{self.project_name} ({self.status})"

    @property
    def student_ids(self):
        return [pk for pk in (self.author_id, self.co_student_id) if pk]

    @property
    def is_editable(self):
        return self.status in self.EDITABLE_STATUSES

    def snapshot_author(self, author):
        self.author_full_name = author.display_name
        self.author_id_number = author.id_number or ''

    def snapshot_co_student(self, co_student):
        self.co_student_full_name = co_student.display_name
        self.co_student_id_number = co_student.id_number or ''


class Project(TimeStampedModel):
    class Status(models.TextChoices):
        PROPOSAL = 'proposal', 'Proposal'
        SPECIFICATION = 'specification', 'Specification'
        CODE = 'code', 'Code'
        PRESENTATION = 'presentation', 'Presentation'
        DONE = 'done', 'Done'

    name = models.CharField(max_length=200)
    background = models.TextField(blank=True)
    objectives = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PROPOSAL)

    students = models.ManyToManyField(User, related_name='projects')
    mentor = models.ForeignKey(
        User, on_delete=models.PROTECT, null=True, related_name='mentored_projects'
    )
    proposal = models.OneToOneField(Proposal, on_delete=models.PROTECT, related_name='project')

    # Snapshots kept stable even if profiles change later
    student_names = models.JSONField(default=list, blank=True)
    mentor_name = models.CharField(max_length=200, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    hod_reviewer = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_projects'
    )

    def __str__(self):
        return self.name

    def is_participant(self, user):
        return user.pk == self.mentor_id or self.students.filter(pk=user.pk).exists()

    def participant_ids(self):
        ids = list(self.students.values_list('pk', flat=True))
        if self.mentor_id:
            ids.append(self.mentor_id)
        return ids


class Meeting(TimeStampedModel):
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ACCEPTED = 'accepted', 'Accepted'
        REJECTED = 'rejected', 'Rejected'
        HELD = 'held', 'Held'
        EXPIRED = 'expired', 'Expired'

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='meetings')
    proposer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='proposed_meetings')
    mentor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='mentor_meetings')
    proposed_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    attendees = models.ManyToManyField(User, related_name='meetings')
    last_reschedule_reason = models.TextField(blank=True)

    class Meta:
        ordering = ['proposed_date']

    def __str__(self):
        return f"{self.project} on {self.proposed_date:%Y-%m-%d %H:%M} ({self.status})"

    @property
    def counterparty_role(self):
        """The side opposite the latest proposer: students answer the mentor and vice versa."""
        if self.proposer_id == self.mentor_id:
            return Role.STUDENT
        return Role.MENTOR

    @property
    def awaiting_approval_from(self):
        """Which side may approve or decline next, or None when nothing is pending."""
        if self.status != self.Status.PENDING:
            return None
        return self.counterparty_role

    def is_attendee(self, user):
        return self.attendees.filter(pk=user.pk).exists()


class Task(TimeStampedModel):
    class Status(models.TextChoices):
        OPEN = 'open', 'Open'
        COMPLETED = 'completed', 'Completed'

    meeting = models.ForeignKey(Meeting, on_delete=models.CASCADE, related_name='tasks')
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='tasks')
    created_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name='created_tasks')
    last_updated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_tasks'
    )

    title = models.CharField(max_length=200)
    description = models.TextField(max_length=4000, blank=True)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN, db_index=True)
    due_date = models.DateTimeField(null=True, blank=True, db_index=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    due_date_at_completion = models.DateTimeField(null=True, blank=True)
    completed_late = models.BooleanField(default=False)

    class Meta:
        ordering = ['due_date', '-created_at']
        indexes = [
            models.Index(fields=['project', 'status', 'due_date'], name='task_project_status_due_idx'),
            models.Index(fields=['meeting', 'due_date'], name='task_meeting_due_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_overdue(self):
        if not self.due_date or self.status == self.Status.COMPLETED:
            return False
        return self.due_date < timezone.now()

    def save(self, *args, **kwargs):
        if self.status == self.Status.COMPLETED:
            if self.completed_at is None:
                self.completed_at = timezone.now()
            if self.due_date_at_completion is None:
                self.due_date_at_completion = self.due_date
            self.completed_late = bool(
                self.due_date_at_completion and self.completed_at > self.due_date_at_completion
            )
        else:
            self.completed_at = None
            self.due_date_at_completion = None
            self.completed_late = False
        super().save(*args, **kwargs)


class Request(models.Model):
    """A student's request to be mentored by a specific mentor."""
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='mentor_requests')
    mentor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='incoming_requests')
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.student} → {self.mentor} ({self.status})"
