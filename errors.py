class FinanceError(Exception):
    status_code = 500
    default_message = 'Something went wrong.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFoundError(FinanceError):
    status_code = 404
    default_message = 'Resource not found.'


class ValidationError(FinanceError):
    status_code = 400
    default_message = 'Invalid input.'


class StorageError(FinanceError):
    status_code = 500
    default_message = 'Storage operation failed.'
