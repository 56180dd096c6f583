#!/usr/bin/env python3
"""
Setup script for Neustadt - the Neustadt.fr site builder.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='neustadt',
    version='1.0.0',
    author='Parimal Satyal',
    description='Markdown to HTML build pipeline for the Neustadt.fr site',
    long_description=long_description,
    long_description_content_type='text/markdown',
    url='https://www.neustadt.fr',
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'neustadt_pkg': [
            'starter/layout/*.html',
            'starter/layout/partials/*.html',
            'starter/src/*.md',
            'starter/src/*/*.md',
            'starter/src/css/*.css',
        ],
    },
    include_package_data=True,
    install_requires=[
        'Jinja2>=3.0',
        'MarkupSafe>=2.0',
        'mistune>=3.0',
        'PyYAML>=6.0',
        'Pygments>=2.10',
        'pymdown-extensions>=9.0',
        'python-dateutil>=2.8',
        'watchdog>=2.1',
        'csscompressor>=0.9.5',
        'rjsmin>=1.2',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'requests>=2.25',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Site Management',
        'Topic :: Text Processing :: Markup :: HTML',
    ],
    python_requires='>=3.8',
    entry_points={
        'console_scripts': [
            'neustadt=neustadt_pkg.cli:main',
        ],
    },
    keywords='static site, markdown, jinja2, pygments, essays',
)
