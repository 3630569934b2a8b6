import pytest

from identity import IdentityError
from scripts.link_firebase_uid import link_firebase_uid


class StubIdentity:
    def __init__(self, email=None, error=None):
        self.email = email
        self.error = error
        self.looked_up = []

    def lookup_user_email(self, uid):
        self.looked_up.append(uid)
        if self.error:
            raise self.error
        return self.email


def test_script_links_uid_and_activates_contact(db, seed):
    seed.contact.is_activated = False
    db.commit()

    contact = link_firebase_uid("uid-from-script", f"  {seed.contact.email.upper()} ")
    assert contact.id == seed.contact.id
    assert contact.firebase_uid == "uid-from-script"
    assert contact.is_activated is True


def test_script_resolves_email_from_firebase_when_omitted(seed):
    identity = StubIdentity(email=seed.contact.email.upper())

    contact = link_firebase_uid(" uid-from-firebase ", identity=identity)
    assert identity.looked_up == ["uid-from-firebase"]
    assert contact.id == seed.contact.id
    assert contact.firebase_uid == "uid-from-firebase"


@pytest.mark.parametrize(
    "identity",
    [StubIdentity(email=None), StubIdentity(error=IdentityError("could not load user"))],
)
def test_script_stops_when_firebase_has_no_email(seed, identity):
    with pytest.raises(SystemExit):
        link_firebase_uid("uid-unknown", identity=identity)


def test_script_refuses_uid_owned_by_another_contact(seed, other_seed):
    with pytest.raises(SystemExit):
        link_firebase_uid(other_seed.uid, seed.contact.email)
    with pytest.raises(SystemExit):
        link_firebase_uid("uid-unused", "nobody@example.com")
