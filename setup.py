import setuptools
import os

own_dir = os.path.abspath(os.path.dirname(__file__))


def requirements():
    with open(os.path.join(own_dir, 'requirements.txt')) as f:
        for line in f.readlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            yield line


def version():
    with open(os.path.join(own_dir, 'VERSION')) as f:
        return f.read().strip()


setuptools.setup(
    name='release-report',
    version=version(),
    description='Changelog and schema script generator for git repositories',
    python_requires='>=3.11',
    packages=['release_report'],
    package_data={
        '': ['VERSION'],
    },
    install_requires=list(requirements()),
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'release-report = release_report.cli:main',
        ],
    },
)
