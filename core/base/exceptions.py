class StaleRecord(Exception):
    """
    Raised when a versioned record was changed by someone else since it was read.

    Attributes:
        model_label: "app_label.ModelName" of the record
        pk: primary key of the record
        expected_version: version the caller read
        current_version: version found in the store (None if unknown)
    """

    def __init__(self, model_label, pk, expected_version, current_version=None):
        self.model_label = model_label
        self.pk = pk
        self.expected_version = expected_version
        self.current_version = current_version
        message = f"{model_label} #{pk} was modified concurrently (expected version {expected_version}"
        if current_version is not None:
            message += f", found {current_version}"
        super().__init__(message + ")")
