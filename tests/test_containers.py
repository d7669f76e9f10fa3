import pytest

from evalmodel import Containers, ExportNormalizationError, normalize

def test_containers_discovery_order():
    c = Containers(['issues', 'packages'])
    c.add('packages', {'_id': 1})
    c.add('packages', {'_id': 0})
    assert c.get('packages') == [{'_id': 1}, {'_id': 0}]
    assert c.get('issues') == []
    assert len(c) == 2
    assert [name for name, _ in c.items()] == ['issues', 'packages']

def test_normalize_sorts_by_identity():
    doc = {
        'packages': [{'_id': 2, 'name': 'c'}, {'_id': 0, 'name': 'a'}, {'_id': 1, 'name': 'b'}],
        'scopes': [],
        'titles': ['z', 'y'],
        'statistics': {'errors': 1},
    }
    packages = doc['packages']
    assert normalize(doc) is doc
    # sorted in place
    assert doc['packages'] is packages
    assert [p['name'] for p in doc['packages']] == ['a', 'b', 'c']
    assert doc['titles'] == ['z', 'y']
    assert doc['scopes'] == []

def test_normalize_index_equals_identity():
    doc = {'issues': [{'_id': i} for i in reversed(range(50))]}
    normalize(doc)
    for index, issue in enumerate(doc['issues']):
        assert issue['_id'] == index

def test_normalize_not_dense():
    with pytest.raises(ExportNormalizationError) as exc:
        normalize({'issues': [{'_id': 0}, {'_id': 2}]})
    assert exc.value.path == '$.issues[1]'

def test_normalize_duplicate_identity():
    with pytest.raises(ExportNormalizationError):
        normalize({'issues': [{'_id': 0}, {'_id': 0}]})

def test_normalize_missing_identity():
    with pytest.raises(ExportNormalizationError) as exc:
        normalize({'issues': [{'_id': 0}, {'name': 'no id'}]})
    assert str(exc.value) == '$.issues: Container is not dense, element has no integer _id'
