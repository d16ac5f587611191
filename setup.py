from setuptools import setup, find_packages

setup(
    name='edhex',
    version='0.1.0',
    description='Line-oriented binary file editor with an ed-like command language',
    long_description=open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'pygments>=2.13.0',
        'toml>=0.10.2',
        'wcwidth>=0.2.5',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'edhex = edhex.cli:main'
        ]
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3.11',
    ],
    python_requires='>=3.11',
    license='GPLv3',
)
