from errors import Unauthorized


class AccessControl:
    """Holds the single administrator address fixed at construction."""
    def __init__(self, admin):
        self._admin = admin

    @property
    def admin(self):
        return self._admin

    def is_admin(self, caller):
        return caller == self._admin

    def require_admin(self, caller):
        if not self.is_admin(caller):
            raise Unauthorized()
