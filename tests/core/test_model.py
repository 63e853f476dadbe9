import pytest

from entitylab.core import (
    IntegerField,
    Model,
    ModelConfigurationError,
    Person,
    StringField,
    VersionField,
)


class Tag(Model):
    label = StringField(max_length=10, nullable=False)
    weight = IntegerField(default=1)


def test_person_metadata_collects_fields_in_order():
    assert list(Person._meta.fields.keys()) == ["id", "name", "email", "version"]
    assert Person._meta.primary_key.name == "id"
    assert Person._meta.version_field.name == "version"
    assert Person._meta.table_name == "person"


def test_descriptor_is_static_and_ordered():
    person = Person(name="A", email="a@x.com")
    names = [name for name, _ in Person._meta.descriptor()]
    assert names == ["id", "name", "email", "version"]
    assert person.describe() == [("id", None), ("name", "A"), ("email", "a@x.com"), ("version", 0)]


def test_new_person_is_transient_with_version_zero():
    person = Person(name="A", email="a@x.com")
    assert person.pk is None
    assert person.lock_version == 0
    assert str(person) == "Id: None, Name: A, Email: a@x.com"


def test_mutable_fields_exclude_identity_and_version():
    assert [f.name for f in Person._meta.mutable_fields()] == ["name", "email"]
    assert Person._meta.find_mutable_field("EMAIL").name == "email"
    assert Person._meta.find_mutable_field("version") is None
    assert Person._meta.find_mutable_field("id") is None


def test_changed_fields_tracks_only_mutable_fields():
    person = Person(id=3, name="A", email="a@x.com", version=2)
    person.mark_clean()
    assert not person.is_dirty()
    person.name = "B"
    person.version = 5
    assert person.changed_fields() == {"name": "B"}
    person.mark_clean()
    assert not person.is_dirty()


def test_copy_is_independent():
    person = Person(id=1, name="A", email="a@x.com", version=1)
    clone = person.copy()
    clone.name = "Changed"
    assert person.name == "A"
    assert clone.to_dict() == {"id": 1, "name": "Changed", "email": "a@x.com", "version": 1}


def test_apply_rejects_unknown_field():
    person = Person(name="A")
    with pytest.raises(KeyError):
        person.apply({"nickname": "x"})


def test_non_nullable_field_rejects_none():
    tag = Tag(label="x")
    assert tag.weight == 1
    with pytest.raises(ValueError):
        tag.label = None
    with pytest.raises(ValueError):
        tag.label = "far too long for this"


def test_version_field_rejects_none():
    person = Person(name="A")
    with pytest.raises(ValueError):
        person.version = None


def test_duplicate_primary_key_raises_error():
    with pytest.raises(ModelConfigurationError):

        class BadModel(Model):
            code = IntegerField(primary_key=True)
            other = IntegerField(primary_key=True)


def test_duplicate_version_field_raises_error():
    with pytest.raises(ModelConfigurationError):

        class TwoVersions(Model):
            first = VersionField()
            second = VersionField()


def test_manual_id_field_without_primary_key_errors():
    with pytest.raises(ModelConfigurationError):

        class BadIdentifier(Model):
            id = IntegerField()


def test_named_query_and_mapping_are_declared_on_person():
    assert Person._meta.named_queries["Person.findByName"].endswith("p.name LIKE :name")
    assert Person._meta.result_set_mappings["PersonResult"] == {
        "id": "id",
        "name": "name",
        "email": "email",
    }
