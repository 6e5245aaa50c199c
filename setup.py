from setuptools import setup, find_packages
import re

# Read version from carepay/__init__.py
with open('carepay/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='carepay',
    version=version,
    packages=find_packages(include=['carepay', 'carepay.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'requests>=2.28',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'carepay=carepay.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Care-office payroll records with SmartHR staff sync.',
    python_requires='>=3.10',
)
