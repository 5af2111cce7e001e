import time
import jax
import jax.numpy as np
import numpy as onp
import matplotlib.pyplot as plt

from feform import LinearForm, FiniteElement, AssemblyLevel, ExecutionConfig
from feform import VectorDomainLFIntegrator
from feform.mesh import box_mesh

jax.config.update("jax_enable_x64", True)

# Setup with mesh size (40, 10, 10)
print("Setting up mesh (40x10x10)...")
mesh = box_mesh(Nx=40, Ny=10, Nz=10, domain_x=10., domain_y=2., domain_z=2.)
fe = FiniteElement(mesh, vec=3)
print(f"Mesh info: {fe.num_cells} cells, {fe.num_total_nodes} nodes, {fe.num_total_dofs} DOFs")

gravity = VectorDomainLFIntegrator(lambda x: np.array([0., 0., -9.81]))

lf = LinearForm(fe)
lf.add_domain_integrator(gravity)
reference = onp.asarray(lf.assemble())

lf.set_assembly_level(AssemblyLevel.FULL)

lane_counts = [1, 64, 256, 1024, 4096, None]
strategies = ['atomic', 'coloring', 'reduce']
timings = {scatter: [] for scatter in strategies}

print("\nRunning benchmark...")
print("Scatter   | Lanes | Time (s)   | Rel. diff")
print("-" * 50)

for scatter in strategies:
    for lanes in lane_counts:
        lf.config = ExecutionConfig(lanes=lanes, scatter=scatter)
        # Warm up compilation and plan building
        lf.assemble()

        start_time = time.time()
        b = lf.assemble()
        b.block_until_ready()
        elapsed = time.time() - start_time

        rel_err = onp.linalg.norm(onp.asarray(b) - reference) / onp.linalg.norm(reference)
        timings[scatter].append(elapsed)
        print(f"{scatter:<9} | {str(lanes):>5} | {elapsed:10.4f} | {rel_err:.2e}")

labels = [str(lanes) for lanes in lane_counts]
fig, ax = plt.subplots(figsize=(8, 5))
for scatter in strategies:
    ax.plot(labels, timings[scatter], 'o-', label=scatter)
ax.set_xlabel('Lanes')
ax.set_ylabel('Assembly time (s)')
ax.set_yscale('log')
ax.set_title('Full assembly time vs. lane count')
ax.grid(True, alpha=0.3)
ax.legend()
plt.tight_layout()
plt.savefig('benchmark_lanes.png', dpi=150)
print("\nPlot saved as 'benchmark_lanes.png'")
