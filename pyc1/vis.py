"""Visualization functions.

Plotting uses matplotlib; the export functions write VTK unstructured grids
(`.vtu`, via meshio) together with a ParaView collection file (`.pvd`).
"""
import os.path
import xml.dom.minidom

import numpy as np
import matplotlib.pyplot as plt
import meshio as io

from . import utils
from .bspline import BSplineFunc
from .c1basis import component_of_side, component_of_corner

def plot_field(field, geo=None, res=80, physical=False, contour=False, **kwargs):
    """Plot a scalar field, optionally over a geometry."""
    kwargs.setdefault('shading', 'gouraud')
    if np.isscalar(res):
        res = (res, res)
    if geo is not None:
        grd = tuple(np.linspace(s[0], s[1], r) for (s,r) in zip(geo.support, res))
        XY = utils.grid_eval(geo, grd)
        if physical:
            C = utils.grid_eval_transformed(field, grd, geo)
        else:
            C = utils.grid_eval(field, grd)
        if contour:
            kwargs.pop('shading')
            return plt.contourf(XY[...,0], XY[...,1], C, **kwargs)
        else:
            return plt.pcolormesh(XY[...,0], XY[...,1], C, **kwargs)
    else:
        # assumes that `field` is a BSplineFunc or equivalent
        grd = tuple(np.linspace(s[0], s[1], r) for (s,r) in zip(field.support, res))
        C = utils.grid_eval(field, grd)
        if contour:
            kwargs.pop('shading')
            return plt.contourf(grd[1], grd[0], C, **kwargs)
        else:
            return plt.pcolormesh(grd[1], grd[0], C, **kwargs)

def plot_geo(geo, grid=10, res=50, linewidth=None, lcolor='black', boundary=True, bcolor='black'):
    """Plot a wireframe representation of a planar geometry."""
    assert geo.sdim == 2 and geo.dim == 2, 'Can only plot planar surfaces'
    supp = geo.support
    gridx = np.linspace(supp[1][0], supp[1][1], max(grid, 2))
    gridy = np.linspace(supp[0][0], supp[0][1], max(grid, 2))
    meshx = np.linspace(supp[1][0], supp[1][1], res)
    meshy = np.linspace(supp[0][0], supp[0][1], res)

    def plotline(pts, capstyle='butt', color=lcolor):
        plt.plot(pts[:,0], pts[:,1], color=color, linewidth=linewidth,
            solid_joinstyle='round', solid_capstyle=capstyle)

    pts1 = utils.grid_eval(geo, (gridy, meshx))
    pts2 = utils.grid_eval(geo, (meshy, gridx))
    for i in range(1, pts1.shape[0]-1):
        plotline(pts1[i,:,:])
    for j in range(1, pts2.shape[1]-1):
        plotline(pts2[:,j,:])
    if boundary:
        plotline(pts1[0,:,:], capstyle='round', color=bcolor)
        plotline(pts1[-1,:,:], capstyle='round', color=bcolor)
        plotline(pts2[:,0,:], capstyle='round', color=bcolor)
        plotline(pts2[:,-1,:], capstyle='round', color=bcolor)

def plot_multipatch(mp, funcs=None, res=50, grid=5, labels=False, **kwargs):
    """Plot all patches of a :class:`.MultiPatch`.

    If `funcs` (one scalar function per patch) is given, the fields are
    plotted with a common color scale; otherwise only the wireframes.
    With `labels`, the patch numbers are drawn at the patch centers.
    """
    if funcs is not None:
        if np.isscalar(res):
            res = (res, res)
        values = []
        for p in range(mp.numpatches):
            grd = tuple(np.linspace(s[0], s[1], r) for (s,r) in zip(mp.geo(p).support, res))
            values.append(utils.grid_eval(funcs[p], grd))
        kwargs.setdefault('vmin', min(C.min() for C in values))
        kwargs.setdefault('vmax', max(C.max() for C in values))
    result = None
    for p in range(mp.numpatches):
        geo = mp.geo(p)
        if funcs is not None:
            result = plot_field(funcs[p], geo, res=res, **kwargs)
        plot_geo(geo, grid=grid)
        if labels:
            c = geo.grid_eval(tuple(np.array([0.5 * sum(s)]) for s in geo.support))
            plt.text(c[0,0,0], c[0,0,1], str(p), ha='center', va='center')
    plt.gca().set_aspect('equal')
    return result

################################################################################
# VTK export
################################################################################

def _quad_mesh(geo, res, point_data):
    """Build a meshio quad mesh over the image of `geo` on a uniform grid."""
    if np.isscalar(res):
        res = (res, res)
    grd = tuple(np.linspace(s[0], s[1], r) for (s,r) in zip(geo.support, res))
    XY = utils.grid_eval(geo, grd).reshape((-1, geo.dim))
    points = np.zeros((XY.shape[0], 3))
    points[:, :geo.dim] = XY
    inds = np.arange(res[0] * res[1]).reshape(res)
    quads = np.stack((inds[:-1, :-1], inds[:-1, 1:], inds[1:, 1:], inds[1:, :-1]), axis=-1)
    cells = {'quad': quads.reshape((-1, 4))}
    data = {key: f(grd).ravel() for (key, f) in point_data.items()}
    return io.Mesh(points, cells, data)

def write_pvd(filename, files):
    """Write a ParaView collection file `filename.pvd`.

    `files` is a list of triples `(timestep, part, file)`.
    """
    pvd = xml.dom.minidom.Document()
    pvd_root = pvd.createElementNS("VTK", "VTKFile")
    pvd_root.setAttribute("type", "Collection")
    pvd_root.setAttribute("version", "0.1")
    pvd_root.setAttribute("byte_order", "LittleEndian")
    pvd.appendChild(pvd_root)
    collection = pvd.createElementNS("VTK", "Collection")
    pvd_root.appendChild(collection)
    for (timestep, part, fname) in files:
        dataSet = pvd.createElementNS("VTK", "DataSet")
        dataSet.setAttribute("timestep", str(timestep))
        dataSet.setAttribute("group", "")
        dataSet.setAttribute("part", str(part))
        dataSet.setAttribute("file", os.path.basename(fname))
        collection.appendChild(dataSet)
    with open(filename + ".pvd", "w") as outFile:
        pvd.writexml(outFile, newl="\n")

def write_function(mp, funcs, filename, res=50, name='solution'):
    """Write a multi-patch function to `filename_<patch>.vtu`, one file per
    patch, and the collection `filename.pvd`.

    Returns:
        the list of written `.vtu` files
    """
    files = []
    for p in range(mp.numpatches):
        fname = '%s_%d.vtu' % (filename, p)
        mesh = _quad_mesh(mp.geo(p), res, {name: funcs[p].grid_eval})
        mesh.write(fname)
        files.append(fname)
    write_pvd(filename, [(0, p, f) for (p, f) in enumerate(files)])
    return files

_KIND_COMPONENTS = {
    'inner':  [0],
    'edge':   [component_of_side(s) for s in range(1, 5)],
    'vertex': [component_of_corner(c) for c in range(1, 5)],
}

def basis_functions_of_kind(spline, patch, kind):
    """The basis functions of the given kind which are owned by `patch`,
    restricted to their component space on this patch.

    Returns:
        a list of pairs `(row, func)` of the global function index and a
        :class:`.BSplineFunc`
    """
    if kind not in _KIND_COMPONENTS:
        raise ValueError("kind must be one of 'inner', 'edge', 'vertex', not %r" % (kind,))
    basis = spline.bases[patch]
    M = spline.matrix
    result = []
    for comp in _KIND_COMPONENTS[kind]:
        kvs = basis.get_basis(comp)
        cols = spline.patch_cols(patch, comp)
        for row in spline.patch_rows(patch, comp):
            coeffs = M[row, cols.start:cols.stop].toarray().reshape(tuple(kv.numdofs for kv in kvs))
            result.append((row, BSplineFunc(kvs, coeffs)))
    return result

def write_basis_functions(spline, patch, kind, filename, res=30):
    """Write the basis functions of the given kind (`'inner'`, `'edge'` or
    `'vertex'`) owned by a patch, one `.vtu` file per function, and a
    collection `filename.pvd` with one time step per function.

    Returns:
        the list of written `.vtu` files
    """
    geo = spline.mp.geo(patch)
    files = []
    for (i, (row, func)) in enumerate(basis_functions_of_kind(spline, patch, kind)):
        fname = '%s_%d.vtu' % (filename, i)
        mesh = _quad_mesh(geo, res, {'basis_%d' % row: func.grid_eval})
        mesh.write(fname)
        files.append(fname)
    write_pvd(filename, [(i, 0, f) for (i, f) in enumerate(files)])
    return files
