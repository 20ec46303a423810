import os
from io import open
from setuptools import setup, find_packages


def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname), encoding='utf-8').read()


setup(
    name="gcf-deploy",
    version='0.1.0',
    description="Google Cloud Functions deployment api client",
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        "Topic :: System :: Systems Administration",
        "Topic :: System :: Distributed Computing"
    ],
    license="Apache-2.0",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.6',
    install_requires=[
        "google-auth>=1.11.0",
        "requests>=2.22.0",
        "retrying>=1.3.3",
        "PyYAML>=5.3.1",
        "jsonschema>=3.2.0",
    ],
    extras_require={
        'test': ['pytest'],
    },
)
