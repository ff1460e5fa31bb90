"""Tests for infra_graph reference markers."""

from typing import Union, get_args, get_origin

from infra_graph import LoadBalancer, NetworkRef, Ref, RefList, SecurityGroup


class TestRef:
    """Tests for Ref[T] type."""

    def test_ref_origin(self) -> None:
        """Ref[T] should have correct __origin__."""
        assert Ref[NetworkRef].__origin__ is Ref

    def test_ref_args(self) -> None:
        """Ref[T] should have correct __args__."""
        assert Ref[NetworkRef].__args__ == (NetworkRef,)

    def test_ref_repr(self) -> None:
        """Ref[T] should have readable repr."""
        assert repr(Ref[LoadBalancer]) == "Ref[LoadBalancer]"

    def test_ref_equality(self) -> None:
        """Ref[T] should equal another Ref[T] and hash the same."""
        assert Ref[NetworkRef] == Ref[NetworkRef]
        assert hash(Ref[NetworkRef]) == hash(Ref[NetworkRef])

    def test_ref_inequality(self) -> None:
        """Ref[T] should not equal Ref[U], RefList[T] or non-alias objects."""
        assert Ref[NetworkRef] != Ref[LoadBalancer]
        assert Ref[NetworkRef] != RefList[NetworkRef]
        assert Ref[NetworkRef] != NetworkRef
        assert Ref[NetworkRef] != "Ref[NetworkRef]"


class TestRefList:
    """Tests for RefList[T] type."""

    def test_reflist_origin_and_args(self) -> None:
        """RefList[T] should keep origin and element type."""
        ref_type = RefList[SecurityGroup]
        assert ref_type.__origin__ is RefList
        assert ref_type.__args__ == (SecurityGroup,)

    def test_reflist_repr(self) -> None:
        """RefList[T] should have readable repr."""
        assert repr(RefList[SecurityGroup]) == "RefList[SecurityGroup]"


class TestOptional:
    """Tests for combining markers with None."""

    def test_ref_union_with_none(self) -> None:
        """Ref[T] | None should create a Union type."""
        optional_ref = Ref[NetworkRef] | None
        assert get_origin(optional_ref) is Union
        assert type(None) in get_args(optional_ref)

    def test_none_union_with_ref(self) -> None:
        """None | Ref[T] should also create a Union type."""
        optional_ref = None | Ref[NetworkRef]  # type: ignore[operator]
        assert get_origin(optional_ref) is Union
