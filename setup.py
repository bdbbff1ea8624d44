from setuptools import setup, find_packages
import voroplaces

with open('README.md') as fh:
    long_description = fh.read()


setup(
    name='VoronoiPlaces',
    version=voroplaces.__version__,
    license='MIT',
    description='Voronoi diagram of points of interest over an interactive '
                'map.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    classifiers=['License :: OSI Approved :: MIT License',
                 'Topic :: Scientific/Engineering :: GIS',
                 'Programming Language :: Python :: 3',
                 'Intended Audience :: Developers'],
    packages=find_packages(),
    python_requires='>=3.8',
    install_requires=['numpy', 'scipy', 'pyproj', 'matplotlib', 'kivy',
                      'httpx'],
    extras_require={'tests': ['pytest']},
    package_data={'voroplaces': ['data/*', ]},
)
