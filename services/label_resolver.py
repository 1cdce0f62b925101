from __future__ import annotations

import logging

from services.mail_directory import MailDirectory

LOGGER = logging.getLogger(__name__)


class LabelResolver:
    """Map a label name to its Gmail id, creating the label when it is missing.

    Labels are re-listed on every call. The list-then-create sequence is not
    atomic at the provider, so a concurrent external client could create a
    second label with the same name between the two requests.
    """

    def __init__(self, directory: MailDirectory):
        self._directory = directory

    def lookup(self, name: str) -> str | None:
        for label in self._directory.list_labels():
            if label.name == name:
                LOGGER.debug("Label %s already exists as %s", name, label.id)
                return label.id
        return None

    def resolve(self, name: str) -> str:
        label_id = self.lookup(name)
        if label_id is not None:
            return label_id
        created = self._directory.create_label(name)
        return created.id
