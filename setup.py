from setuptools import setup, find_packages
setup(
    name = "evalmodel",
    version = "0.1.0.dev1",
    description = "Identity-deduplicating export of cyclic evaluated models to JSON and YAML",
    author = "Various Developers",
    packages = find_packages(exclude=['tests']),
    install_requires = [
        'attrs',
        'PyYAML',
        ],
    extras_require = {
        'test': ['pytest', 'hypothesis'],
        },
    python_requires='>=3.8',
    )
