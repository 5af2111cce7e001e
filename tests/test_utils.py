"""Tests for feform.utils."""
import pytest
import numpy as onp
import meshio

from feform.fe import FiniteElement
from feform.integrators import DomainLFIntegrator
from feform.linear_form import LinearForm
from feform.mesh import rectangle_mesh
from feform.utils import save_sol, timeit


@pytest.mark.cpu
def test_timeit_preserves_result_and_name():
    @timeit
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert add.__name__ == 'add'


@pytest.mark.cpu
def test_save_sol_writes_vector_and_attributes(tmp_path):
    mesh = rectangle_mesh(3, 2, 1., 1.)
    mesh.set_attributes([1, 1, 1, 2, 2, 2])
    fe = FiniteElement(mesh, vec=2)
    lf = LinearForm(fe)
    lf.add_domain_integrator(DomainLFIntegrator(1.))
    b = lf.assemble()

    sol_file = str(tmp_path / 'vtk' / 'load.vtu')
    save_sol(fe, b, sol_file, cell_infos=[('cell_id', onp.arange(6.))])

    out = meshio.read(sol_file)
    assert out.points.shape == (12, 3)
    assert onp.allclose(out.point_data['sol'].reshape(-1), onp.asarray(b), atol=1e-6)
    assert onp.array_equal(out.cell_data['attribute'][0], mesh.attributes)
    assert onp.allclose(out.cell_data['cell_id'][0], onp.arange(6.))


@pytest.mark.cpu
def test_save_sol_rejects_bad_cell_data(tmp_path):
    fe = FiniteElement(rectangle_mesh(2, 2, 1., 1.))

    with pytest.raises(AssertionError):
        save_sol(fe, onp.zeros(fe.num_total_dofs), str(tmp_path / 'bad.vtu'),
                 cell_infos=[('wrong', onp.zeros(3))])
