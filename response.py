class Response:
    """Uniform JSON envelope returned by every HTTP endpoint."""

    @staticmethod
    def success(data, message="Success"):
        return {"status": "success", "message": message, "data": data}

    @staticmethod
    def success_without_data(message="Success"):
        return {"status": "success", "message": message}

    @staticmethod
    def error(message, errors=None):
        body = {"status": "error", "message": message}
        if errors:
            body["errors"] = errors
        return body
