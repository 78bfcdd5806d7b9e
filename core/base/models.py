import copy

from django.core.exceptions import ValidationError
from django.db import models, router
from django.db.models import DEFERRED

from core.base.exceptions import StaleRecord


class AuditMixin(models.Model):
    """
    Adds audit fields to track creation and modification metadata.

    Fields:
        - created_at: Timestamp when record was created
        - updated_at: Timestamp when record was last modified
        - created_by: Identifier of the actor who created the record (optional)
        - updated_by: Identifier of the actor who last modified the record (optional)

    Actors are stored as plain identifiers (usernames, service names) so the
    line-item records stay independent of the user store.
    """
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when record was last modified"
    )
    created_by = models.CharField(
        max_length=150,
        blank=True,
        default='',
        help_text="Actor who created this record"
    )
    updated_by = models.CharField(
        max_length=150,
        blank=True,
        default='',
        help_text="Actor who last updated this record"
    )

    class Meta:
        abstract = True


class OptimisticLockMixin(models.Model):
    """
    Read-modify-write under a version check.

    Saving an existing record issues a conditional update
    (``WHERE pk = ? AND version = ?``) that bumps ``version``. If no row
    matches, another writer got there first and StaleRecord is raised; the
    in-memory instance keeps its unsaved changes and its old version.
    Domain operations call ``save_or_restore`` instead, which puts the
    instance back to its last loaded values when the save is refused.

    The mixin also remembers the values the record was loaded with, so
    subclasses can tell whether a field changed since the last read
    (see ``has_changed``).

    Usage:
        class PurchaseOrderItem(OptimisticLockMixin, models.Model):
            ...

        item = PurchaseOrderItem.objects.get(pk=1)
        item.check_version(expected_version)   # optional caller-supplied version
        item.quantity_received += 1
        item.save()                            # StaleRecord on conflict
    """
    version = models.PositiveIntegerField(
        default=0,
        editable=False,
        help_text="Optimistic lock counter, incremented on every save"
    )

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = {
            name: value if value is DEFERRED else copy.deepcopy(value)
            for name, value in zip(field_names, values)
        }
        return instance

    def refresh_from_db(self, *args, **kwargs):
        super().refresh_from_db(*args, **kwargs)
        self._snapshot_loaded_values()

    # ==================== CHANGE TRACKING ====================

    def _snapshot_loaded_values(self):
        self._loaded_values = {
            field.attname: copy.deepcopy(getattr(self, field.attname))
            for field in self._meta.concrete_fields
        }

    def restore_loaded_values(self):
        """Put every field back to the value last read from or written to the store."""
        loaded = getattr(self, '_loaded_values', None)
        if loaded is None:
            return
        for attname, value in loaded.items():
            if value is DEFERRED:
                continue
            setattr(self, attname, copy.deepcopy(value))

    def has_changed(self, attname):
        """Whether a field differs from the value last read from or written to the store."""
        if self._state.adding:
            return True
        loaded = getattr(self, '_loaded_values', None)
        if loaded is None or attname not in loaded:
            return True
        return loaded[attname] != getattr(self, attname)

    # ==================== VERSION CHECKS ====================

    def check_version(self, expected_version):
        """Raise StaleRecord if the caller's version does not match this record's."""
        if expected_version is None:
            return
        if int(expected_version) != self.version:
            raise StaleRecord(self._meta.label, self.pk, int(expected_version), self.version)

    def save(self, *args, **kwargs):
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            update_fields = list(update_fields)
            if not update_fields:
                return
            kwargs['update_fields'] = update_fields

        if self._state.adding or kwargs.get('force_insert'):
            super().save(*args, **kwargs)
        else:
            self._save_versioned(using=kwargs.get('using'), update_fields=kwargs.get('update_fields'))
        self._snapshot_loaded_values()

    def save_or_restore(self, *args, **kwargs):
        """
        Save, or roll the instance back to its loaded values if the save is refused.

        Used by domain operations that mutate several fields before saving, so a
        failed call leaves the instance usable for the next operation.
        """
        try:
            self.save(*args, **kwargs)
        except (ValidationError, StaleRecord):
            self.restore_loaded_values()
            raise

    def _save_versioned(self, using=None, update_fields=None):
        using = using or router.db_for_write(type(self), instance=self)
        expected = self.version

        values = {}
        for field in self._meta.concrete_fields:
            if field.primary_key or field.attname == 'version':
                continue
            if update_fields is not None and field.name not in update_fields and field.attname not in update_fields:
                continue
            values[field.attname] = field.pre_save(self, False)

        updated = type(self)._base_manager.using(using).filter(
            pk=self.pk,
            version=expected
        ).update(version=expected + 1, **values)

        if not updated:
            current = type(self)._base_manager.using(using).filter(pk=self.pk).values_list('version', flat=True).first()
            raise StaleRecord(self._meta.label, self.pk, expected, current)

        self.version = expected + 1
        self._state.db = using
