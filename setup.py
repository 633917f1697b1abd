from setuptools import setup, find_packages


setup(name='lgrlib',
      version='0.1.0',
      description='Explicit Lagrangian dynamics on simplex meshes',
      license='MIT',
      packages=find_packages(include=['lgrlib', 'lgrlib.*']),
      python_requires='>=3.9',
      install_requires=[
          'scipy',
          'numpy',
           ],
      extras_require={
          'test': ['pytest'],
      },
      long_description='Explicit time integration engine for Lagrangian '
                       'continuum mechanics on bar, triangle and tetrahedron meshes.',
      long_description_content_type='text/markdown',
      keywords='explicit dynamics finite elements',
      classifiers=[
          'Development Status :: 3 - Alpha',
          'Intended Audience :: Science/Research',
          'Intended Audience :: Developers',
          'Topic :: Scientific/Engineering',
          'Topic :: Scientific/Engineering :: Physics',
          'License :: OSI Approved :: MIT License',
          'Programming Language :: Python :: 3.9',
      ],
      zip_safe=False)
