from contactbook.contacts.models import CONTACT_COLUMNS, Contact

__all__ = ["CONTACT_COLUMNS", "Contact"]
