import pytest

from evalmodel import ExportIdentityExhausted, Identity, IdentityRegistry

class Thing:
    def __init__(self, name):
        self.name = name

    def __eq__(self, other):
        return isinstance(other, Thing) and other.name == self.name

    def __hash__(self):
        return hash(self.name)

def test_identify_dense_per_type():
    r = IdentityRegistry()
    a, b, c = Thing('a'), Thing('b'), Thing('c')
    assert r.identify(a, 'things', '$.a') == Identity('things', 0)
    assert r.identify(b, 'others', '$.b') == Identity('others', 0)
    assert r.identify(c, 'things', '$.c') == Identity('things', 1)
    assert r.counts() == {'things': 2, 'others': 1}
    assert len(r) == 3

def test_identify_same_instance():
    r = IdentityRegistry()
    a = Thing('a')
    first = r.identify(a, 'things', '$.a')
    assert r.identify(a, 'things', '$.again') is first
    assert r.get(a) is first
    assert r.counts() == {'things': 1}

def test_identify_uses_instance_identity():
    r = IdentityRegistry()
    a1, a2 = Thing('a'), Thing('a')
    assert a1 == a2
    assert r.identify(a1, 'things', '$') != r.identify(a2, 'things', '$')
    assert r.get(Thing('a')) is None

def test_claim_states():
    r = IdentityRegistry()
    a = Thing('a')
    r.identify(a, 'things', '$.a')
    assert r.claim_state[id(a)] == IdentityRegistry.UNCLAIMED
    assert list(r.unclaimed()) == [(Identity('things', 0), '$.a')]

    assert r.claim(a) is True
    assert r.claim_state[id(a)] == IdentityRegistry.CLAIMING
    # a node being serialized is not claimed twice, cycles end here.
    assert r.claim(a) is False

    r.complete(a)
    assert r.claim_state[id(a)] == IdentityRegistry.CLAIMED
    assert r.claim(a) is False
    assert list(r.unclaimed()) == []

def test_unclaimed_first_path():
    r = IdentityRegistry()
    a, b = Thing('a'), Thing('b')
    r.identify(a, 'things', '$.first')
    r.identify(a, 'things', '$.second')
    r.identify(b, 'things', '$.third')
    r.claim(b)
    assert list(r.unclaimed()) == [(Identity('things', 0), '$.first')]

def test_identity_exhausted():
    r = IdentityRegistry(max_identities=2)
    r.identify(Thing('a'), 'things', '$.a')
    r.identify(Thing('b'), 'things', '$.b')
    # other types have their own identity space
    r.identify(Thing('c'), 'others', '$.c')
    with pytest.raises(ExportIdentityExhausted) as exc:
        r.identify(Thing('d'), 'things', '$.d')
    assert exc.value.tag == 'things'
    assert exc.value.count == 3
    assert exc.value.path == '$.d'
    assert str(exc.value) == ("$.d: Identity space exhausted for 'things': "
                              "3 identities, the limit is 2")

def test_identity_str():
    assert str(Identity('packages', 3)) == 'packages[3]'
